# colour_quant/dither/__init__.py
"""
Dither API.

Provides:
  apply_dither(image, palette, mode, out=None, rng=None, *, debug=False)
    Map an image onto a palette, returning an IndexedImage (or None).

    Args:
      image   : uint8 [H,W,3] / [H,W,4] / [H,W], PIL image or IndexedImage
      palette : Palette or sequence of (r, g, b)
      mode    : DitherMode, its value or its name
      out     : optional IndexedImage of the same size, filled in place
      rng     : numpy Generator for DitherMode.RANDOM

  nearest_dither, floyd_steinberg_dither, sierra_dither, burkes_dither,
  atkinson_dither, random_dither
    The individual algorithms, same (image, palette, out=None) arguments.

Notes:
  - Error diffusion is integer fixed point with serpentine rows.
  - Floyd-Steinberg, Sierra and Burkes pass on 3/4 of the error for
    palettes under 64 colours.
"""

from .diffusion import (
    ErrorBuffer,
    atkinson_dither,
    burkes_dither,
    error_diffusion_dither,
    floyd_steinberg_dither,
    sierra_dither,
)
from .kernels import ATKINSON, BURKES, FLOYD_STEINBERG, KERNELS, SIERRA, DiffusionKernel
from .nearest import nearest_dither, nearest_indices, two_nearest
from .random_dither import random_dither
from .run import DitherMode, apply_dither

__all__ = [
    "DitherMode",
    "apply_dither",
    "nearest_dither",
    "floyd_steinberg_dither",
    "sierra_dither",
    "burkes_dither",
    "atkinson_dither",
    "random_dither",
    "error_diffusion_dither",
    "ErrorBuffer",
    "DiffusionKernel",
    "FLOYD_STEINBERG",
    "SIERRA",
    "BURKES",
    "ATKINSON",
    "KERNELS",
    "nearest_indices",
    "two_nearest",
]
