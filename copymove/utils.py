"""
Image collaborators around the detection core.

Provides:
- Image I/O helpers (load_image, save_image, save_json)
- Working-resolution resize (resize_max_dimension)
- Stack-blur pre-filter (stack_blur)
- Forged-region rendering (render_forgeries)
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Sequence, Union

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .colorspace import to_rgb
from .matching import DisplacementVector

OVERLAY_COLOR = (255, 0, 0)   # RGB


# ── Image I/O helpers ────────────────────────────────────────────────

def ensure_dir(path: Union[str, Path]) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load a PNG/JPEG (or any Pillow-readable) image as uint8.

    Images carrying transparency are returned as HxWx4 RGBA, everything
    else (L, P, CMYK, I, F, ...) as HxWx3 RGB.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ValueError
        If the file cannot be decoded as an image.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                img = img.convert("RGBA")
            elif img.mode != "RGB":
                img = img.convert("RGB")
            return np.array(img, dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Error decoding the image {path}: {exc}") from exc


def save_image(img: np.ndarray, path: Union[str, Path]) -> Path:
    """
    Encode an RGB or RGBA uint8 array as PNG and write it to *path*.

    The file is always PNG, whatever extension *path* carries.

    Raises
    ------
    OSError
        If OpenCV cannot encode the array or the file cannot be written.
    """
    path = Path(path)
    code = cv2.COLOR_RGBA2BGRA if img.shape[-1] == 4 else cv2.COLOR_RGB2BGR
    try:
        ok, buf = cv2.imencode(".png", cv2.cvtColor(img, code))
        if not ok:
            raise OSError("PNG encoder returned no data")
        ensure_dir(path.parent)
        path.write_bytes(buf.tobytes())
    except (cv2.error, OSError) as exc:
        raise OSError(f"Error encoding image file {path}: {exc}") from exc
    return path


def json_sanitize(obj: Any) -> Any:
    """Convert numpy scalars/arrays and Paths to JSON-safe Python types."""
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (list, tuple)):
        return [json_sanitize(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): json_sanitize(v) for k, v in obj.items()}
    return obj


def save_json(data: Dict[str, Any], out_path: Union[str, Path]) -> str:
    out_path = Path(out_path)
    ensure_dir(out_path.parent)
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(json_sanitize(data), f, indent=2)
    return str(out_path)


# ── Pre-processing ───────────────────────────────────────────────────

def resize_max_dimension(img: np.ndarray, max_size: int) -> np.ndarray:
    """
    Downscale so that the working resolution stays bounded.

    If the width exceeds *max_size* the width becomes *max_size*; otherwise,
    if the height exceeds it, the height does.  Aspect ratio is preserved
    and only one side is checked, so a tall image whose width was reduced
    may keep a height above the limit.  ``max_size <= 0`` disables resizing.
    """
    if max_size <= 0:
        return img
    h, w = img.shape[:2]
    if w > max_size:
        new_w = max_size
        new_h = int(0.7 + h / (w / max_size))
    elif h > max_size:
        new_h = max_size
        new_w = int(0.7 + w / (h / max_size))
    else:
        return img
    return cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_LANCZOS4)


def stack_blur(img: np.ndarray, radius: int) -> np.ndarray:
    """Stack blur with the given radius (kernel ``2 * radius + 1``); identity for 0."""
    if radius < 0:
        raise ValueError(f"Blur radius must be >= 0, got {radius}")
    if radius == 0:
        return img.copy()
    k = 2 * radius + 1
    return cv2.stackBlur(img, (k, k))


# ── Rendering ────────────────────────────────────────────────────────

def render_forgeries(
    img: np.ndarray,
    regions: Sequence[DisplacementVector],
    block_size: int,
    blur_radius: int = 10,
) -> np.ndarray:
    """Overlay forged regions on *img* as soft red squares.

    Each region paints a ``2 * block_size`` square anchored at its source
    block on a transparent layer; the layer is stack-blurred and
    alpha-composited over the RGB image.

    Returns
    -------
    np.ndarray
        HxWx3 uint8 RGB image.
    """
    base = to_rgb(img).astype(np.float32)
    h, w = base.shape[:2]

    alpha = np.zeros((h, w), dtype=np.uint8)
    side = 2 * block_size
    for r in regions:
        alpha[r.ya : min(r.ya + side, h), r.xa : min(r.xa + side, w)] = 255

    if regions and blur_radius > 0:
        alpha = stack_blur(alpha, blur_radius)

    a = (alpha.astype(np.float32) / 255.0)[..., np.newaxis]
    color = np.array(OVERLAY_COLOR, dtype=np.float32)
    out = base * (1.0 - a) + color * a
    return np.clip(np.round(out), 0, 255).astype(np.uint8)
