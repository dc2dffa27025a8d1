# colour_quant/dither/nearest.py
from __future__ import annotations

"""
Nearest palette colour lookups and plain (undithered) mapping.

Distances are squared RGB distances in integers; ties go to the lowest
palette index, as a linear scan with a strict '<' would do.
"""

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from ..constants import LOOKUP_CHUNK, NO_SECOND_MATCH_DIST_SQ
from ..core_types import IndexedImage, Palette, U8Image, as_rgb_image, index_dtype_for
from ..utils import debug_log, warn

PaletteLike = Union[Palette, Sequence[Sequence[int]]]


def as_palette(palette: Optional[PaletteLike]) -> Optional[Palette]:
    """Palette, or None when missing or empty."""
    if palette is None:
        return None
    if not isinstance(palette, Palette):
        palette = Palette.from_colours(palette)
    return palette if len(palette) else None


def distances_sq(colours: np.ndarray, palette_rgb: np.ndarray) -> NDArray[np.int64]:
    """(N,3) colours x (P,3) palette -> (N,P) squared distances."""
    diff = colours.astype(np.int64)[:, None, :] - palette_rgb.astype(np.int64)[None, :, :]
    return np.sum(diff * diff, axis=2)


def nearest_indices(colours: np.ndarray, palette: Palette) -> NDArray[np.intp]:
    """Nearest palette index for each (N,3) colour row."""
    rows = colours.reshape(-1, 3)
    out = np.empty(rows.shape[0], dtype=np.intp)
    for start in range(0, rows.shape[0], LOOKUP_CHUNK):
        block = rows[start : start + LOOKUP_CHUNK]
        out[start : start + block.shape[0]] = np.argmin(distances_sq(block, palette.rgb), axis=1)
    return out


def two_nearest(
    colours: np.ndarray, palette: Palette
) -> Tuple[NDArray[np.intp], NDArray[np.intp], NDArray[np.int64], NDArray[np.int64]]:
    """
    Best and second-best palette entries per colour row.

    Returns (c1, c2, d1, d2). With a one-colour palette c2 is 0 and d2 is
    NO_SECOND_MATCH_DIST_SQ.
    """
    rows = colours.reshape(-1, 3)
    n = rows.shape[0]
    c1 = np.empty(n, dtype=np.intp)
    c2 = np.empty(n, dtype=np.intp)
    d1 = np.empty(n, dtype=np.int64)
    d2 = np.empty(n, dtype=np.int64)
    for start in range(0, n, LOOKUP_CHUNK):
        block = rows[start : start + LOOKUP_CHUNK]
        stop = start + block.shape[0]
        dist = distances_sq(block, palette.rgb)
        lane = np.arange(block.shape[0])

        first = np.argmin(dist, axis=1)
        c1[start:stop] = first
        d1[start:stop] = dist[lane, first]

        dist[lane, first] = NO_SECOND_MATCH_DIST_SQ
        second = np.argmin(dist, axis=1)
        c2[start:stop] = second
        d2[start:stop] = dist[lane, second]
    return c1, c2, d1, d2


def prepare_target(
    image: Any, palette: Optional[PaletteLike], out: Optional[IndexedImage]
) -> Optional[Tuple[U8Image, Palette, IndexedImage]]:
    """
    Common argument handling for every dither entry point.

    Returns (rgb, palette, out) ready to fill, or None when the image is
    missing or empty, the palette is empty, or out has the wrong size.
    """
    rgb = as_rgb_image(image)
    pal = as_palette(palette)
    if rgb is None or pal is None:
        return None
    height, width = rgb.shape[:2]
    if out is None:
        return rgb, pal, IndexedImage.blank(width, height, pal)
    if out.width != width or out.height != height:
        warn(f"output is {out.width}x{out.height}, image is {width}x{height}")
        return None
    dtype = index_dtype_for(len(pal))
    if np.iinfo(out.indices.dtype).max < len(pal) - 1:
        out.indices = out.indices.astype(dtype)
    out.palette = pal
    return rgb, pal, out


def nearest_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """Map every pixel to its nearest palette colour, no error diffusion."""
    try:
        prepared = prepare_target(image, palette, out)
        if prepared is None:
            return None
        rgb, pal, target = prepared

        # Look up each distinct colour once.
        flat = rgb.reshape(-1, 3)
        uniq, inverse = np.unique(flat, axis=0, return_inverse=True)
        idx = nearest_indices(uniq, pal)[inverse.reshape(-1)]
        target.indices[...] = idx.reshape(target.indices.shape)
    except MemoryError:
        warn("out of memory mapping image to palette")
        return None

    if debug:
        debug_log(f"nearest: {uniq.shape[0]:,} distinct colours -> {len(pal)} entries")
    return target


__all__ = [
    "PaletteLike",
    "as_palette",
    "distances_sq",
    "nearest_indices",
    "two_nearest",
    "prepare_target",
    "nearest_dither",
]
