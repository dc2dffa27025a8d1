# colour_quant/dither/run.py
from __future__ import annotations

"""
Dither mode selection and dispatch.
"""

from enum import IntEnum
from typing import Any, Optional, Union

import numpy as np

from ..core_types import IndexedImage
from .diffusion import error_diffusion_dither
from .kernels import KERNELS
from .nearest import PaletteLike, nearest_dither
from .random_dither import random_dither


class DitherMode(IntEnum):
    NONE = 0
    FLOYD_STEINBERG = 1
    SIERRA = 2
    BURKES = 3
    ATKINSON = 4
    RANDOM = 5

    @classmethod
    def parse(cls, value: Union["DitherMode", int, str]) -> "DitherMode":
        """Accept a member, its integer value or its name ('floyd_steinberg')."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper().replace("-", "_")]
            except KeyError:
                raise ValueError(f"unknown dither mode: {value!r}") from None
        return cls(int(value))

    @property
    def label(self) -> str:
        return self.name.lower()


def apply_dither(
    image: Any,
    palette: Optional[PaletteLike],
    mode: Union[DitherMode, int, str] = DitherMode.NONE,
    out: Optional[IndexedImage] = None,
    rng: Optional[np.random.Generator] = None,
    *,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """Map image onto palette with the chosen dither mode."""
    mode = DitherMode.parse(mode)
    if mode == DitherMode.NONE:
        return nearest_dither(image, palette, out, debug=debug)
    if mode == DitherMode.RANDOM:
        return random_dither(image, palette, out, rng=rng, debug=debug)
    # Diffusion kernels are keyed by mode label.
    return error_diffusion_dither(image, palette, KERNELS[mode.label], out, debug=debug)


__all__ = ["DitherMode", "apply_dither"]
