# colour_quant/dither/diffusion.py
from __future__ import annotations

"""
Serpentine error-diffusion dithering (Floyd-Steinberg, Sierra, Burkes, Atkinson).

Fixed-point integer arithmetic, scale = kernel denominator:
  - pending error at a pixel is acc / denominator (3 * acc / (4 * denominator)
    with error reduction), where acc holds residual * weight sums
  - the match candidate is (value + denominator / 2 - 1) / denominator,
    clamped to [0, 255]
  - the residual is value - palette_colour * denominator
All divisions truncate toward zero.

Even rows run left to right, odd rows right to left with mirrored taps.
"""

from typing import Any, Dict, Optional, Sequence

import numpy as np

from ..constants import ERROR_REDUCTION_MAX_COLOURS
from ..core_types import IndexedImage, Palette
from ..utils import debug_log, warn
from .kernels import ATKINSON, BURKES, FLOYD_STEINBERG, SIERRA, DiffusionKernel
from .nearest import PaletteLike, distances_sq, prepare_target


def trunc_div(a: np.ndarray, d: int) -> np.ndarray:
    """Integer division rounding toward zero."""
    return np.sign(a) * (np.abs(a) // d)


class ErrorBuffer:
    """
    Pending error for the current row and the rows below it.

    Row 0 is the row being dithered. scroll() moves everything up one row
    and clears the new last row.
    """

    def __init__(self, width: int, rows: int) -> None:
        self.width = width
        self.rows = rows
        self.data = np.zeros((rows, width, 3), dtype=np.int64)

    def pending(self, x: int) -> np.ndarray:
        return self.data[0, x]

    def add(self, x: int, dy: int, weighted: np.ndarray) -> None:
        self.data[dy, x] += weighted

    def scroll(self) -> None:
        self.data[:-1] = self.data[1:]
        self.data[-1] = 0


def _diffuse(
    buffer: ErrorBuffer,
    height: int,
    x: int,
    y: int,
    dx: int,
    dy: int,
    weight: int,
    residual: np.ndarray,
) -> None:
    """Accumulate residual * weight at (x+dx, y+dy) when that pixel exists."""
    tx = x + dx
    if 0 <= tx < buffer.width and y + dy < height:
        buffer.add(tx, dy, residual * weight)


def error_diffusion_dither(
    image: Any,
    palette: Optional[PaletteLike],
    kernel: DiffusionKernel,
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """
    Dither image onto palette with kernel. Returns the filled IndexedImage,
    or None for missing/empty input or a mismatched out.
    """
    try:
        prepared = prepare_target(image, palette, out)
        if prepared is None:
            return None
        rgb, pal, target = prepared
        _run_kernel(rgb, pal, kernel, target.indices, debug=debug)
    except MemoryError:
        warn(f"out of memory during {kernel.name} dithering")
        return None
    return target


def _run_kernel(
    rgb: np.ndarray,
    pal: Palette,
    kernel: DiffusionKernel,
    indices: np.ndarray,
    *,
    debug: bool = False,
) -> None:
    height, width = rgb.shape[:2]
    denom = kernel.denominator
    rounding = kernel.rounding
    reduce_error = kernel.error_reduction and len(pal) < ERROR_REDUCTION_MAX_COLOURS
    forward = kernel.taps
    backward = kernel.mirrored()

    pal_fixed = pal.rgb.astype(np.int64) * denom
    buffer = ErrorBuffer(width, kernel.rows)
    lookups: Dict[int, int] = {}

    for y in range(height):
        left_to_right = (y % 2) == 0
        taps: Sequence = forward if left_to_right else backward
        xs = range(width) if left_to_right else range(width - 1, -1, -1)
        src_row = rgb[y].astype(np.int64) * denom

        for x in xs:
            acc = buffer.pending(x)
            if reduce_error:
                value = src_row[x] + trunc_div(3 * acc, 4 * denom)
            else:
                value = src_row[x] + trunc_div(acc, denom)

            cand = np.clip(trunc_div(value + rounding, denom), 0, 255)
            key = (int(cand[0]) << 16) | (int(cand[1]) << 8) | int(cand[2])
            idx = lookups.get(key)
            if idx is None:
                idx = int(np.argmin(distances_sq(cand[None, :], pal.rgb)[0]))
                lookups[key] = idx
            indices[y, x] = idx

            residual = value - pal_fixed[idx]
            for dx, dy, weight in taps:
                _diffuse(buffer, height, x, y, dx, dy, weight, residual)

        buffer.scroll()

    if debug:
        debug_log(
            f"{kernel.name}: {width}x{height}  error reduction: "
            f"{'on' if reduce_error else 'off'}  lookups: {len(lookups):,}"
        )


def floyd_steinberg_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    return error_diffusion_dither(image, palette, FLOYD_STEINBERG, out, debug=debug)


def sierra_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    return error_diffusion_dither(image, palette, SIERRA, out, debug=debug)


def burkes_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    return error_diffusion_dither(image, palette, BURKES, out, debug=debug)


def atkinson_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    return error_diffusion_dither(image, palette, ATKINSON, out, debug=debug)


__all__ = [
    "trunc_div",
    "ErrorBuffer",
    "error_diffusion_dither",
    "floyd_steinberg_dither",
    "sierra_dither",
    "burkes_dither",
    "atkinson_dither",
]
