# colour_quant/image_io.py
from __future__ import annotations

import io
from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .core_types import IndexedImage, Palette, U8Image, index_dtype_for

"""
Image I/O helpers (RGB in sRGB) and IndexedImage <-> PIL bridges.
"""

try:
    from PIL import ImageCms  # ICC conversion if profile present
except ImportError:  # pragma: no cover
    ImageCms = None  # type: ignore[assignment]

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".bmp", ".gif")

# PIL "P" images hold at most this many palette entries.
PIL_PALETTE_MAX = 256


def _to_srgb(im: Image.Image) -> Image.Image:
    """Upright RGB copy of im, colour-managed to sRGB when it carries an ICC profile."""
    im = ImageOps.exif_transpose(im)
    rgb = im.convert("RGB")
    profile = im.info.get("icc_profile")
    if not profile or ImageCms is None:
        return rgb
    try:
        converted = ImageCms.profileToProfile(
            rgb,
            ImageCms.ImageCmsProfile(io.BytesIO(profile)),
            ImageCms.createProfile("sRGB"),
            renderingIntent=ImageCms.Intent.PERCEPTUAL,
            outputMode="RGB",
        )
    except (ImageCms.PyCMSError, OSError, ValueError):
        return rgb
    return converted if converted is not None else rgb


def load_image_rgb(path: Path) -> U8Image:
    """Load any Pillow-readable image as (H, W, 3) uint8 sRGB. Alpha is dropped."""
    with Image.open(path) as im0:
        im = _to_srgb(im0)
    return np.array(im, dtype=np.uint8)


def indexed_from_pil(im: Image.Image) -> IndexedImage:
    """Wrap a PIL "P" image as an IndexedImage; other modes raise ValueError."""
    if im.mode != "P":
        raise ValueError(f"expected a palette ('P') image, got {im.mode!r}")
    rows = np.array(im.getpalette() or [], dtype=np.uint8).reshape(-1, 3)
    indices = np.array(im, dtype=np.uint8)
    if indices.size and int(indices.max()) >= rows.shape[0]:
        raise ValueError("palette image uses indices beyond its palette")
    palette = Palette(rows)
    return IndexedImage(indices.astype(index_dtype_for(len(palette))), palette)


def to_pil(image: IndexedImage) -> Image.Image:
    """
    IndexedImage -> PIL image. Palettes of up to 256 colours give a "P"
    image, larger ones an RGB image.
    """
    if len(image.palette) > PIL_PALETTE_MAX:
        return Image.fromarray(image.to_rgb())
    # putpalette turns the "L" image into a "P" image with the same values.
    im = Image.fromarray(image.indices.astype(np.uint8))
    im.putpalette(image.palette.rgb.reshape(-1).tolist())
    return im


def save_indexed_image(path: Path, image: IndexedImage) -> Path:
    """Save as PNG (suffix forced). Returns the path written."""
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    to_pil(image).save(path)
    return path


def is_image_file(path: Path) -> bool:
    if path.suffix.lower() not in IMAGE_SUFFIXES:
        return False
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


def image_size(rgb: U8Image) -> Tuple[int, int]:
    """(width, height) of an (H, W, ...) array."""
    return int(rgb.shape[1]), int(rgb.shape[0])


__all__ = [
    "IMAGE_SUFFIXES",
    "load_image_rgb",
    "indexed_from_pil",
    "to_pil",
    "save_indexed_image",
    "is_image_file",
    "image_size",
]
