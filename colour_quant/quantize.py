# colour_quant/quantize.py
from __future__ import annotations

"""
Quantizer entry points.

Exports:
  quantize_full(image, desired_num_colors, seed_palette=None, dither=NONE, match_space=RGB, *, rng=None, debug=False)
  quantize_fast(image, desired_num_colors, dither=NONE, *, rng=None, debug=False)
  count_unique_colours(image) -> int
  extract_full_palette(image) -> Palette | None

Flow per call:
  population table -> palette (greedy or top-N) -> dither into an IndexedImage.
A non-RGB match space converts a private copy of the source first and converts
the finished palette back to RGB, so the caller's image is never modified.
"""

import time
from typing import Any, Optional, Union

import numpy as np

from .colour_convert import ColourSpace, colourspace_name, image_to_space, rgb_to_space, space_to_rgb
from .core_types import IndexedImage, Palette, as_rgb_image, is_grayscale_source
from .dither import DitherMode, apply_dither
from .palette_builder import build_palette, build_palette_fast
from .population import PopulationTable
from .utils import debug_log, format_duration, format_pairs, warn


def _log_summary(label: str, pairs, t0: float) -> None:
    pairs = list(pairs) + [("Time", format_duration(time.perf_counter() - t0))]
    debug_log(f"{label}: {format_pairs(pairs)}")


def quantize_full(
    image: Any,
    desired_num_colors: int,
    seed_palette: Optional[Palette] = None,
    dither: Union[DitherMode, int, str] = DitherMode.NONE,
    match_space: Union[ColourSpace, int, str] = ColourSpace.RGB,
    *,
    rng: Optional[np.random.Generator] = None,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """
    Quantize image to at most desired_num_colors colours with the greedy builder.

    seed_palette, when given, provides the first palette entries.
    match_space changes the metric used for building and matching only; the
    returned palette is RGB. Grayscale sources always match in RGB.
    Returns None for a missing/empty image or desired_num_colors <= 0.
    """
    dither = DitherMode.parse(dither)
    space = ColourSpace.parse(match_space)
    if desired_num_colors <= 0:
        return None
    if space != ColourSpace.RGB and is_grayscale_source(image):
        space = ColourSpace.RGB

    t0 = time.perf_counter()
    try:
        rgb = as_rgb_image(image)
        if rgb is None:
            return None
        if space != ColourSpace.RGB:
            # as_rgb_image may hand back the caller's buffer.
            work = image_to_space(rgb.copy(), space)
            if seed_palette is not None:
                seed_palette = Palette(rgb_to_space(seed_palette.rgb, space))
        else:
            work = rgb

        table = PopulationTable.build(work, debug=debug)
        if table is None:
            return None
        palette = build_palette(table, desired_num_colors, seed_palette, debug=debug)
        if palette is None:
            return None

        result = apply_dither(work, palette, dither, rng=rng, debug=debug)
        if result is None:
            return None
        if space != ColourSpace.RGB:
            result.palette = Palette(space_to_rgb(result.palette.rgb, space))
    except MemoryError:
        warn(f"out of memory quantizing to {desired_num_colors} colours")
        return None

    if debug:
        _log_summary(
            "quantize",
            [
                ("Unique", len(table)),
                ("Palette", len(result.palette)),
                ("Dither", dither.label),
                ("Space", colourspace_name(space)),
                ("Seeded", seed_palette is not None),
            ],
            t0,
        )
    return result


def quantize_fast(
    image: Any,
    desired_num_colors: int,
    dither: Union[DitherMode, int, str] = DitherMode.NONE,
    *,
    rng: Optional[np.random.Generator] = None,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """
    Quantize with the desired_num_colors most frequent colours as the palette.
    Faster and lighter than quantize_full; near-duplicate colours are not
    filtered out. Always matches in RGB.
    """
    dither = DitherMode.parse(dither)
    if desired_num_colors <= 0:
        return None

    t0 = time.perf_counter()
    try:
        rgb = as_rgb_image(image)
        if rgb is None:
            return None
        table = PopulationTable.build(rgb, debug=debug)
        if table is None:
            return None
        palette = build_palette_fast(table, desired_num_colors, debug=debug)
        if palette is None:
            return None
        result = apply_dither(rgb, palette, dither, rng=rng, debug=debug)
    except MemoryError:
        warn(f"out of memory quantizing to {desired_num_colors} colours")
        return None

    if debug and result is not None:
        _log_summary(
            "quantize_fast",
            [("Unique", len(table)), ("Palette", len(palette)), ("Dither", dither.label)],
            t0,
        )
    return result


def count_unique_colours(image: Any) -> int:
    """Number of distinct colours in image (0 for a missing or empty image)."""
    table = PopulationTable.build(image)
    return 0 if table is None else len(table)


def extract_full_palette(image: Any) -> Optional[Palette]:
    """
    Every distinct colour of image, in first-occurrence order.
    An IndexedImage returns a copy of its own palette.
    """
    if isinstance(image, IndexedImage):
        return image.palette.copy()
    table = PopulationTable.build(image)
    if table is None:
        return None
    return Palette(table.colours.copy())


# Compat aliases

count_unique_colors = count_unique_colours
quantize_greedy = quantize_full
quantize_quick = quantize_fast


__all__ = [
    "quantize_full",
    "quantize_fast",
    "count_unique_colours",
    "extract_full_palette",
    "count_unique_colors",
    "quantize_greedy",
    "quantize_quick",
]
