"""
Image, seed and mask I/O, plus overlays for inspecting a segmentation.
"""

import json
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

IMG_EXTS = {".jpg", ".jpeg", ".png", ".bmp", ".tif", ".tiff", ".npy"}
SEED_EXTS = (".json", ".npy")


# --------------------------- Images ---------------------------

def load_image_grayscale(path: str) -> np.ndarray:
    """Return float32 grayscale in [0, 1]."""
    img = Image.open(path)
    if img.mode not in ("L", "I;16", "I", "F"):
        img = img.convert("L")
    arr = np.asarray(img)
    arr = np.ascontiguousarray(arr)
    if np.issubdtype(arr.dtype, np.integer):
        arr = arr.astype(np.float32) / float(np.iinfo(arr.dtype).max)
    else:
        arr = arr.astype(np.float32)
        vmin, vmax = float(arr.min()), float(arr.max())
        arr = np.zeros_like(arr, dtype=np.float32) if vmax <= vmin else (arr - vmin) / (vmax - vmin)
    return arr


def load_image_rgb(path: str) -> np.ndarray:
    """Return H x W x 3 uint8 RGB."""
    img = Image.open(path).convert("RGB")
    return np.asarray(img, dtype=np.uint8)


def load_volume(path: str) -> np.ndarray:
    """Load an N-D intensity array stored with ``np.save``."""
    arr = np.load(path, allow_pickle=False)
    if arr.size == 0:
        raise ValueError(f"{path} holds an empty array")
    return arr


def load_image(path: str, rgb: bool = False) -> np.ndarray:
    """Load ``.npy`` arrays as they are, other files through Pillow."""
    if Path(path).suffix.lower() == ".npy":
        return load_volume(path)
    return load_image_rgb(path) if rgb else load_image_grayscale(path)


# --------------------------- Seeds ---------------------------

def parse_seed(text: str) -> Tuple[int, ...]:
    """Parse a comma separated coordinate such as ``"5,5,5"``."""
    parts = [p.strip() for p in text.split(",") if p.strip()]
    if not parts:
        raise ValueError(f"Empty seed coordinate {text!r}")
    return tuple(int(p) for p in parts)


def load_seeds(path: str) -> List[Tuple[int, ...]]:
    """
    Load seed coordinates from a file.

    ``.json`` files hold a list of coordinate lists, either at the top level
    or under a ``"seeds"`` key. ``.npy`` files hold a seed mask whose
    non-zero voxels become seeds, in C order.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".json":
        with open(p, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("seeds", [])
        return [tuple(int(c) for c in seed) for seed in data]
    if suffix == ".npy":
        mask = np.load(p, allow_pickle=False)
        return [tuple(int(c) for c in seed) for seed in np.argwhere(mask != 0)]
    raise ValueError(f"Unsupported seed file {path}, expected one of {SEED_EXTS}")


def find_image_seed_pairs(images_dir: str, seeds_dir: str) -> List[Tuple[str, Optional[str]]]:
    """Pair images with seed files by basename. Prefer .json, else .npy, else None."""
    images_dir = Path(images_dir)
    seeds_dir = Path(seeds_dir)
    imgs = [p for p in images_dir.iterdir() if p.is_file() and p.suffix.lower() in IMG_EXTS]
    pairs = []
    for ip in sorted(imgs):
        found = [seeds_dir / f"{ip.stem}{ext}" for ext in SEED_EXTS]
        seed_path = next((str(sp) for sp in found if sp.exists()), None)
        pairs.append((str(ip), seed_path))
    return pairs


# --------------------------- Masks ---------------------------

def save_mask(mask: np.ndarray, out_path: str) -> None:
    """
    Save a label mask. ``.npy`` keeps any shape and dtype; ``.png`` takes 2-D
    masks, stored 8-bit when labels fit and 16-bit otherwise.
    """
    m = np.asarray(mask)
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    if out.suffix.lower() == ".npy":
        np.save(out, m)
        return
    if m.ndim != 2:
        raise ValueError(f"Only 2-D masks can be saved as images, got shape {m.shape}; use .npy")
    if m.min() < 0 or m.max() > np.iinfo(np.uint16).max:
        raise ValueError(f"Labels in [{m.min()}, {m.max()}] do not fit an image file; use .npy")
    dtype = np.uint8 if m.max() <= 255 else np.uint16
    Image.fromarray(m.astype(dtype)).save(out)


def save_overlay(composite: np.ndarray, out_path: str) -> None:
    """Save an RGB uint8 composite from ``overlay_mask`` as an image file."""
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(np.asarray(composite, dtype=np.uint8)).save(out)


def overlay_mask(image: np.ndarray,
                 mask: np.ndarray,
                 alpha: float = 0.5,
                 color: Sequence[int] = (255, 0, 0)) -> np.ndarray:
    """
    Alpha blend a mask over an intensity image.

    Parameters:
    ----------
    image : np.ndarray
        Grayscale image with the mask's shape, or RGB with one extra trailing
        axis of length 3. uint8 images are used as they are, anything else is
        rescaled to [0, 255].

    mask : np.ndarray
        Label mask; every non-zero voxel is tinted.

    alpha : float, optional
        Opacity of the tint in [0, 1]. Default: 0.5

    color : sequence of int, optional
        RGB tint. Default: red

    Returns:
    -------
    np.ndarray
        uint8 composite with shape mask.shape + (3,)
    """
    if not 0.0 <= alpha <= 1.0:
        raise ValueError(f"alpha must be within [0, 1], got {alpha}")
    mask = np.asarray(mask)
    base = np.asarray(image)

    if base.shape == mask.shape:
        is_rgb = False
    elif base.shape == mask.shape + (3,):
        is_rgb = True
    else:
        raise ValueError(f"Image of shape {base.shape} does not match mask of shape {mask.shape}")

    if base.dtype == np.uint8:
        scaled = base.astype(np.float64)
    else:
        base = base.astype(np.float64)
        vmin, vmax = float(base.min()), float(base.max())
        scaled = np.zeros_like(base) if vmax <= vmin else (base - vmin) / (vmax - vmin) * 255.0

    rgb = scaled if is_rgb else np.repeat(scaled[..., np.newaxis], 3, axis=-1)
    out = rgb.copy()
    fg = mask != 0
    out[fg] = (1.0 - alpha) * rgb[fg] + alpha * np.asarray(color, dtype=np.float64)
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)
