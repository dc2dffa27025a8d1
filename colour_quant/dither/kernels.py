# colour_quant/dither/kernels.py
from __future__ import annotations

"""
Error-diffusion kernels.

Each tap is (dx, dy, weight) relative to the current pixel for a
left-to-right sweep; right-to-left rows use mirrored() taps.
Weights are in units of 1/denominator.
"""

from dataclasses import dataclass
from typing import Tuple

Tap = Tuple[int, int, int]


@dataclass(frozen=True)
class DiffusionKernel:
    name: str
    taps: Tuple[Tap, ...]
    denominator: int
    # Feed only 3/4 of the pending error forward when the palette is small.
    error_reduction: bool = False

    @property
    def rows(self) -> int:
        """Error rows the kernel touches, the current row included."""
        return 1 + max(dy for _, dy, _ in self.taps)

    @property
    def weight_total(self) -> int:
        return sum(w for _, _, w in self.taps)

    @property
    def rounding(self) -> int:
        """Bias added before dividing a fixed-point value back to 8 bits."""
        return self.denominator // 2 - 1

    def mirrored(self) -> Tuple[Tap, ...]:
        return tuple((-dx, dy, w) for dx, dy, w in self.taps)


FLOYD_STEINBERG = DiffusionKernel(
    "floyd_steinberg",
    ((1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1)),
    16,
    error_reduction=True,
)

SIERRA = DiffusionKernel(
    "sierra",
    (
        (1, 0, 5),
        (2, 0, 3),
        (-2, 1, 2),
        (-1, 1, 4),
        (0, 1, 5),
        (1, 1, 4),
        (2, 1, 2),
        (-1, 2, 2),
        (0, 2, 3),
        (1, 2, 2),
    ),
    32,
    error_reduction=True,
)

BURKES = DiffusionKernel(
    "burkes",
    ((1, 0, 8), (2, 0, 4), (0, 1, 8), (1, 1, 4), (-1, 1, 4), (2, 1, 2), (-2, 1, 2)),
    32,
    error_reduction=True,
)

# Only 6/8 of the error is passed on; the rest is dropped on purpose.
ATKINSON = DiffusionKernel(
    "atkinson",
    ((1, 0, 1), (2, 0, 1), (-1, 1, 1), (0, 1, 1), (1, 1, 1), (0, 2, 1)),
    8,
)

KERNELS = {k.name: k for k in (FLOYD_STEINBERG, SIERRA, BURKES, ATKINSON)}

__all__ = [
    "Tap",
    "DiffusionKernel",
    "FLOYD_STEINBERG",
    "SIERRA",
    "BURKES",
    "ATKINSON",
    "KERNELS",
]
