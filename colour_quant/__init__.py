# colour_quant/__init__.py
"""
colour_quant package.

Purpose:
  Reduce an image to a bounded palette and map its pixels onto that palette,
  with optional dithering. See quantize_image.py for the CLI.

Public API:
  quantize_full        : greedy palette + dithering, optional seed palette and match space.
  quantize_fast        : top-N palette + dithering; faster, lower quality.
  count_unique_colours : distinct colour count.
  extract_full_palette : every distinct colour as a Palette.
  DitherMode           : NONE, FLOYD_STEINBERG, SIERRA, BURKES, ATKINSON, RANDOM.
  ColourSpace          : RGB, HSV, YIQ, YCBCR.
  core_types           : Palette, IndexedImage, PopulationEntry, packing helpers.
  population           : PopulationTable.
  palette_builder      : build_palette, build_palette_fast.
  dither               : individual dither algorithms and apply_dither.
  colour_convert       : colour space transforms.
  image_io             : Pillow load/save and PIL bridges.
  utils                : logging, formatting and image metrics.

Quick start:
  from colour_quant import quantize_full, DitherMode
  out = quantize_full(rgb, 16, dither=DitherMode.FLOYD_STEINBERG)
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import core_types
from . import population
from . import palette_builder
from . import dither
from . import utils
from . import image_io

from .colour_convert import ColourSpace  # noqa: E402,F401
from .core_types import IndexedImage, Palette  # noqa: E402,F401
from .dither import DitherMode, apply_dither  # noqa: E402,F401
from .quantize import (  # noqa: E402,F401
    count_unique_colors,
    count_unique_colours,
    extract_full_palette,
    quantize_fast,
    quantize_full,
    quantize_greedy,
    quantize_quick,
)

__all__ = [
    "__version__",
    "colour_convert",
    "core_types",
    "population",
    "palette_builder",
    "dither",
    "utils",
    "image_io",
    "ColourSpace",
    "DitherMode",
    "IndexedImage",
    "Palette",
    "apply_dither",
    "quantize_full",
    "quantize_fast",
    "count_unique_colours",
    "extract_full_palette",
    "count_unique_colors",
    "quantize_greedy",
    "quantize_quick",
]
