"""
Command line front end for confidence connected region growing.

Single image:
    confgrow --image volume.npy --seed 5,5,5 --output mask.npy

Batch, pairing every image with a seed file of the same basename:
    confgrow --images_dir imgs --seeds_dir seeds --output_dir out --overlay
"""

import argparse, json, logging, time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import numpy as np
from tqdm import tqdm

from .core import (DEFAULT_ITERATIONS, DEFAULT_MULTIPLIER, DEFAULT_RADIUS,
                   DEFAULT_REPLACE_VALUE, grow)
from .errors import RegionGrowError
from .io import (find_image_seed_pairs, load_image, load_seeds, overlay_mask,
                 parse_seed, save_mask, save_overlay)

METHOD_NAME = "confidence_connected"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Confidence connected region growing, single image or batch")
    # single image mode
    ap.add_argument("--image", type=str, help="image file or .npy volume")
    ap.add_argument("--seed", type=parse_seed, action="append", default=[],
                    help="seed coordinate in index order, e.g. 5,5,5; repeat for several seeds")
    ap.add_argument("--seeds-file", type=str, help=".json coordinate list or .npy seed mask")
    ap.add_argument("--output", type=str, help="mask path, .npy or .png")
    # batch mode
    ap.add_argument("--images_dir", type=str)
    ap.add_argument("--seeds_dir", type=str)
    ap.add_argument("--output_dir", type=str)
    ap.add_argument("--num-images", type=int, default=0, help="0 means all")
    ap.add_argument("--start-one", type=int, default=1, help="1-indexed start position")
    ap.add_argument("--workers", type=int, default=0, help="thread pool size, 0 runs sequentially")
    ap.add_argument("--overlay", action="store_true", help="also write an overlay png next to each mask")
    # growth parameters
    ap.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS)
    ap.add_argument("--multiplier", type=float, default=DEFAULT_MULTIPLIER)
    ap.add_argument("--radius", type=int, default=DEFAULT_RADIUS, help="initial neighborhood radius")
    ap.add_argument("--replace-value", type=int, default=DEFAULT_REPLACE_VALUE)
    ap.add_argument("--rgb", action="store_true", help="load images as RGB and grow on all channels")
    ap.add_argument("--channel-axis", type=int, default=None, help="channel axis of multi-channel .npy inputs")
    ap.add_argument("--stop-on-convergence", action="store_true")
    ap.add_argument("--verbose", action="store_true", help="log per-iteration statistics")
    ap.add_argument("--run-tests", action="store_true")
    return ap


def _channel_axis(image_path: str, args):
    if args.rgb and Path(image_path).suffix.lower() != ".npy":
        return -1
    return args.channel_axis


def run_single_image(image_path: str, seeds, args):
    image = load_image(image_path, rgb=args.rgb)
    channel_axis = _channel_axis(image_path, args)

    t0 = time.time()
    mask = grow(image, seeds,
                number_of_iterations=args.iterations,
                multiplier=args.multiplier,
                initial_neighborhood_radius=args.radius,
                replace_value=args.replace_value,
                channel_axis=channel_axis,
                stop_on_convergence=args.stop_on_convergence)
    ms = (time.time() - t0) * 1000.0

    shape = "x".join(str(s) for s in mask.shape)
    logging.info(f"{Path(image_path).stem}, {shape}, seeds {len(seeds)}, "
                 f"voxels {int(np.count_nonzero(mask))}, runtime_ms {ms:.2f}")
    return image, mask, channel_axis


def _overlay_view(image: np.ndarray, mask: np.ndarray, channel_axis):
    """2-D image/mask pair to blend; volumes use the middle slice of the first axis."""
    if channel_axis is not None and image.shape != mask.shape + (3,):
        image = np.take(image, 0, axis=channel_axis)
    while mask.ndim > 2:
        mid = mask.shape[0] // 2
        image, mask = image[mid], mask[mid]
    return image, mask


def save_outputs(base: str, image, mask, channel_axis, out_root: Path, overlay: bool) -> Path:
    ext = ".png" if mask.ndim == 2 else ".npy"
    mask_path = out_root / f"{base}_mask{ext}"
    save_mask(mask, str(mask_path))
    if overlay:
        view_image, view_mask = _overlay_view(image, mask, channel_axis)
        save_overlay(overlay_mask(view_image, view_mask), str(out_root / f"{base}_overlay.png"))
    return mask_path


def _run_single(args) -> None:
    seeds = list(args.seed)
    try:
        if args.seeds_file:
            seeds.extend(load_seeds(args.seeds_file))
        image, mask, channel_axis = run_single_image(args.image, seeds, args)
    except (RegionGrowError, ValueError, OSError) as e:
        logging.error(f"Error on {Path(args.image).stem}: {e}")
        raise SystemExit(1) from e

    if args.output:
        out = Path(args.output)
        save_mask(mask, str(out))
        if args.overlay:
            view_image, view_mask = _overlay_view(image, mask, channel_axis)
            save_overlay(overlay_mask(view_image, view_mask), str(out.with_name(f"{out.stem}_overlay.png")))

    print(json.dumps({
        "image": args.image,
        "voxels": int(np.count_nonzero(mask)),
        "shape": list(mask.shape),
        "output": args.output,
        "method": METHOD_NAME
    }))


def _run_batch(args) -> None:
    pairs = find_image_seed_pairs(args.images_dir, args.seeds_dir)
    start_idx = max(0, int(args.start_one) - 1)
    if start_idx >= len(pairs):
        logging.info(json.dumps({"processed": 0, "skipped": len(pairs), "reason": "start index beyond input"}))
        return
    end_idx = len(pairs) if args.num_images == 0 else min(len(pairs), start_idx + int(args.num_images))
    work_list = pairs[start_idx:end_idx]

    out_root = Path(args.output_dir) / METHOD_NAME
    out_root.mkdir(parents=True, exist_ok=True)

    def task(img_path, seed_path):
        base = Path(img_path).stem
        if seed_path is None:
            return base, None, "missing seed file"
        try:
            t0 = time.time()
            image, mask, channel_axis = run_single_image(img_path, load_seeds(seed_path), args)
            save_outputs(base, image, mask, channel_axis, out_root, args.overlay)
            return base, (time.time() - t0) * 1000.0, None
        except Exception as e:
            return base, None, str(e)

    processed, skipped = 0, 0
    times = []
    with tqdm(total=len(work_list), desc="ConfidenceConnected") as pbar:
        if args.workers and args.workers > 0:
            with ThreadPoolExecutor(max_workers=int(args.workers)) as ex:
                results = ex.map(lambda pair: task(*pair), work_list)
                for base, ms, err in results:
                    processed, skipped = _tally(base, ms, err, times, processed, skipped)
                    pbar.update(1)
        else:
            for img_path, seed_path in work_list:
                base, ms, err = task(img_path, seed_path)
                processed, skipped = _tally(base, ms, err, times, processed, skipped)
                pbar.update(1)

    print(json.dumps({
        "total": len(work_list),
        "processed": processed,
        "skipped": skipped,
        "avg_runtime_ms": float(np.mean(times)) if times else None,
        "median_runtime_ms": float(np.median(times)) if times else None,
        "iterations": int(args.iterations),
        "multiplier": float(args.multiplier),
        "radius": int(args.radius),
        "method": METHOD_NAME
    }))


def _tally(base, ms, err, times, processed, skipped):
    if err is not None:
        logging.error(f"Error on {base}: {err}, skipping")
        return processed, skipped + 1
    times.append(ms)
    return processed + 1, skipped


def main(argv=None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    if args.run_tests:
        _run_tests()
        return

    if args.images_dir or args.seeds_dir or args.output_dir:
        if not (args.images_dir and args.seeds_dir and args.output_dir):
            ap.error("batch mode needs --images_dir, --seeds_dir and --output_dir")
        _run_batch(args)
        return

    if not args.image:
        ap.error("either --image or --images_dir is required")
    if not args.seed and not args.seeds_file:
        ap.error("--image needs at least one --seed or a --seeds-file")
    _run_single(args)


# --------------------------- Minimal tests ---------------------------

def _synthetic_case(size: int = 10):
    volume = np.full((size, size, size), 100.0, dtype=np.float32)
    c = size // 2
    volume[c - 1:c + 2, c - 1:c + 2, c - 1:c + 2] = 500.0
    return volume, [(c, c, c)]


def _run_tests():
    logging.info("Running synthetic test")
    volume, seeds = _synthetic_case()
    mask = grow(volume, seeds, number_of_iterations=1, multiplier=2.5, initial_neighborhood_radius=1)
    expected = volume == 500.0
    assert int(mask.sum()) == 27, "cube must hold 27 voxels"
    assert np.array_equal(mask.astype(bool), expected), "mask must match the bright cube"
    logging.info("OK, cube recovered")
    print(json.dumps({"test": "ok", "voxels": int(mask.sum())}))


if __name__ == "__main__":
    main()
