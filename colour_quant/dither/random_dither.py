# colour_quant/dither/random_dither.py
from __future__ import annotations

"""
Random dithering between the two nearest palette colours.

A pixel at (integer) distance e1 from its nearest colour and e2 from the
second nearest takes the second colour with probability e1 / (e1 + e2).
Exact matches always keep the nearest colour.
"""

from typing import Any, Optional

import numpy as np
from numpy.typing import NDArray

from ..core_types import IndexedImage
from ..utils import debug_log, warn
from .nearest import PaletteLike, prepare_target, two_nearest


def isqrt_array(values: np.ndarray) -> NDArray[np.int64]:
    """Floor square root of non-negative int64 values."""
    values = values.astype(np.int64)
    root = np.floor(np.sqrt(values.astype(np.float64))).astype(np.int64)
    # Float rounding can be one off either way.
    root -= (root * root > values).astype(np.int64)
    root += ((root + 1) * (root + 1) <= values).astype(np.int64)
    return root


def random_dither(
    image: Any,
    palette: Optional[PaletteLike],
    out: Optional[IndexedImage] = None,
    *,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
    debug: bool = False,
) -> Optional[IndexedImage]:
    """
    Map each pixel to one of its two nearest palette colours at random,
    weighted by distance. Pass rng or seed for repeatable output.
    """
    try:
        prepared = prepare_target(image, palette, out)
        if prepared is None:
            return None
        rgb, pal, target = prepared
        rng = rng if rng is not None else np.random.default_rng(seed)

        flat = rgb.reshape(-1, 3)
        uniq, inverse = np.unique(flat, axis=0, return_inverse=True)
        c1, c2, d1, d2 = two_nearest(uniq, pal)
        inverse = inverse.reshape(-1)
        e1 = isqrt_array(d1)[inverse]
        e2 = isqrt_array(d2)[inverse]

        inexact = e1 > 0
        draws = np.zeros(flat.shape[0], dtype=np.int64)
        if np.any(inexact):
            draws[inexact] = rng.integers(0, e1[inexact] + e2[inexact])
        use_second = inexact & (draws < e1)

        idx = np.where(use_second, c2[inverse], c1[inverse])
        target.indices[...] = idx.reshape(target.indices.shape)
    except MemoryError:
        warn("out of memory during random dithering")
        return None

    if debug:
        debug_log(
            f"random: {int(inexact.sum()):,} inexact pixels, "
            f"{int(use_second.sum()):,} took the second colour"
        )
    return target


__all__ = ["isqrt_array", "random_dither"]
