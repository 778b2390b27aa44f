"""Tests for the command line front end."""

import json

import numpy as np
import pytest
from PIL import Image

from confgrow.cli import main


def _last_json(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


@pytest.fixture
def cube_file(tmp_path, cube_volume):
    path = tmp_path / "cube.npy"
    np.save(path, cube_volume)
    return path


class TestSelfCheck:
    def test_run_tests(self, capsys):
        main(["--run-tests"])
        assert _last_json(capsys) == {"test": "ok", "voxels": 27}


class TestSingleImage:
    def test_writes_mask(self, tmp_path, cube_file, capsys):
        out = tmp_path / "mask.npy"
        main(["--image", str(cube_file), "--seed", "5,5,5", "--iterations", "1", "--output", str(out)])

        mask = np.load(out)
        assert int(mask.sum()) == 27
        summary = _last_json(capsys)
        assert summary["voxels"] == 27
        assert summary["shape"] == [10, 10, 10]

    def test_overlay_of_volume(self, tmp_path, cube_file):
        out = tmp_path / "mask.npy"
        main(["--image", str(cube_file), "--seed", "5,5,5", "--output", str(out), "--overlay"])

        overlay = np.asarray(Image.open(tmp_path / "mask_overlay.png"))
        assert overlay.shape == (10, 10, 3)

    def test_seeds_file(self, tmp_path, cube_file, capsys):
        seeds = tmp_path / "seeds.json"
        seeds.write_text(json.dumps([[5, 5, 5], [4, 4, 4]]))
        main(["--image", str(cube_file), "--seeds-file", str(seeds), "--iterations", "2", "--radius", "0"])
        assert _last_json(capsys)["voxels"] == 27

    def test_bad_seed_exits(self, cube_file):
        with pytest.raises(SystemExit) as exc:
            main(["--image", str(cube_file), "--seed", "50,5,5"])
        assert exc.value.code == 1

    def test_missing_seeds_file_exits(self, tmp_path, cube_file):
        with pytest.raises(SystemExit) as exc:
            main(["--image", str(cube_file), "--seeds-file", str(tmp_path / "absent.json")])
        assert exc.value.code == 1

    def test_missing_image_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["--image", str(tmp_path / "absent.npy"), "--seed", "1,1,1"])
        assert exc.value.code == 1

    def test_needs_a_seed(self, cube_file):
        with pytest.raises(SystemExit) as exc:
            main(["--image", str(cube_file)])
        assert exc.value.code == 2

    def test_needs_an_input(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2


class TestBatch:
    @pytest.fixture
    def batch_dirs(self, tmp_path, cube_volume):
        images = tmp_path / "images"
        seeds = tmp_path / "seeds"
        images.mkdir()
        seeds.mkdir()

        np.save(images / "cube.npy", cube_volume)
        (seeds / "cube.json").write_text(json.dumps([[5, 5, 5]]))

        square = np.full((32, 32), 20, dtype=np.uint8)
        square[8:20, 10:24] = 220
        Image.fromarray(square).save(images / "square.png")
        seed_mask = np.zeros((32, 32), dtype=np.uint8)
        seed_mask[12, 15] = 1
        np.save(seeds / "square.npy", seed_mask)

        np.save(images / "orphan.npy", cube_volume)
        np.save(images / "wrong.npy", cube_volume)
        (seeds / "wrong.json").write_text(json.dumps([[99, 0, 0]]))
        return images, seeds, tmp_path / "out"

    @pytest.mark.parametrize("workers", ["0", "2"])
    def test_processes_and_skips(self, batch_dirs, capsys, workers):
        images, seeds, out = batch_dirs
        main(["--images_dir", str(images), "--seeds_dir", str(seeds), "--output_dir", str(out),
              "--iterations", "2", "--overlay", "--workers", workers])

        summary = _last_json(capsys)
        assert summary["total"] == 4
        assert summary["processed"] == 2
        assert summary["skipped"] == 2
        assert summary["method"] == "confidence_connected"

        root = out / "confidence_connected"
        assert int(np.load(root / "cube_mask.npy").sum()) == 27
        square_mask = np.asarray(Image.open(root / "square_mask.png"))
        assert int(square_mask.sum()) == 12 * 14
        assert (root / "square_overlay.png").exists()
        assert not (root / "orphan_mask.npy").exists()

    def test_num_images_window(self, batch_dirs, capsys):
        images, seeds, out = batch_dirs
        main(["--images_dir", str(images), "--seeds_dir", str(seeds), "--output_dir", str(out),
              "--start-one", "2", "--num-images", "2"])

        # sorted inputs: cube, orphan, square, wrong
        summary = _last_json(capsys)
        assert summary["total"] == 2
        assert summary["processed"] == 1
        assert summary["skipped"] == 1

    def test_incomplete_batch_arguments(self, batch_dirs):
        images, _, _ = batch_dirs
        with pytest.raises(SystemExit) as exc:
            main(["--images_dir", str(images)])
        assert exc.value.code == 2
