# colour_quant/population.py
from __future__ import annotations

"""
Population table: every distinct colour of an image with its pixel count.

Exports:
  PopulationTable.build(image) -> PopulationTable | None
  unpack_rows(packed) -> (N, 3) uint8

Notes:
  - One table per call. Nothing is cached at module level.
  - Row order is first occurrence in a row-major scan.
  - Rated for POPULATION_CAPACITY distinct colours; larger tables are still
    exact here but are flagged (over_capacity) and a warning is logged.
"""

from typing import Any, List, Optional

import numpy as np
from numpy.typing import NDArray

from .constants import POPULATION_CAPACITY
from .core_types import IndexedImage, PopulationEntry, U8Rows, as_rgb_image, pack_rows
from .utils import debug_log, warn


def unpack_rows(packed: NDArray[np.int64]) -> U8Rows:
    """(N,) packed 0xRRGGBB values -> (N, 3) uint8 rows."""
    out = np.empty((packed.shape[0], 3), dtype=np.uint8)
    out[:, 0] = (packed >> 16) & 0xFF
    out[:, 1] = (packed >> 8) & 0xFF
    out[:, 2] = packed & 0xFF
    return out


def _first_occurrence_counts(values: np.ndarray):
    """Unique values ordered by first occurrence, with their counts."""
    uniq, first, counts = np.unique(values, return_index=True, return_counts=True)
    order = np.argsort(first, kind="stable")
    return uniq[order], counts[order].astype(np.int64)


class PopulationTable:
    """Distinct colours (rows) and how often each occurs."""

    capacity = POPULATION_CAPACITY

    def __init__(self, colours: U8Rows, counts: NDArray[np.int64]) -> None:
        self.colours: U8Rows = np.ascontiguousarray(colours, dtype=np.uint8).reshape(-1, 3)
        self.counts: NDArray[np.int64] = np.asarray(counts, dtype=np.int64).reshape(-1)
        if self.colours.shape[0] != self.counts.shape[0]:
            raise ValueError("colours and counts differ in length")

    @classmethod
    def build(cls, image: Any, *, debug: bool = False) -> Optional["PopulationTable"]:
        """
        Count every distinct colour of image in one pass.
        Indexed images are counted over their palette.
        Returns None for a missing or empty image.
        """
        if isinstance(image, IndexedImage):
            if image.indices.size == 0 or len(image.palette) == 0:
                return None
            table = cls._from_indexed(image)
        else:
            rgb = as_rgb_image(image)
            if rgb is None:
                return None
            packed, counts = _first_occurrence_counts(pack_rows(rgb).reshape(-1))
            table = cls(unpack_rows(packed), counts)

        if table.over_capacity:
            warn(
                f"population table holds {len(table):,} distinct colours, "
                f"above the rated capacity of {cls.capacity:,}"
            )
        if debug:
            debug_log(
                f"population: {len(table):,} distinct colours over {table.total_pixels:,} pixels"
            )
        return table

    @classmethod
    def _from_indexed(cls, image: IndexedImage) -> "PopulationTable":
        used, used_counts = _first_occurrence_counts(image.indices.reshape(-1))
        colours = image.palette.rgb[used.astype(np.intp)]

        # Palettes may repeat a colour; fold repeats onto their first slot.
        packed = pack_rows(colours)
        uniq, first, inverse = np.unique(packed, return_index=True, return_inverse=True)
        totals = np.bincount(inverse.reshape(-1), weights=used_counts, minlength=uniq.size)
        order = np.argsort(first, kind="stable")
        return cls(unpack_rows(uniq[order]), totals[order].astype(np.int64))

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    @property
    def total_pixels(self) -> int:
        return int(self.counts.sum())

    @property
    def over_capacity(self) -> bool:
        return len(self) > self.capacity

    def entries(
        self,
        selected: Optional[NDArray[np.bool_]] = None,
        palette_index: Optional[NDArray[np.int64]] = None,
    ) -> List[PopulationEntry]:
        """
        One PopulationEntry per row. Given the selected/palette_index arrays
        a PaletteBuilder keeps, chosen rows carry their palette index.
        """
        out: List[PopulationEntry] = []
        rows = zip(self.colours.tolist(), self.counts.tolist())
        for i, ((r, g, b), n) in enumerate(rows):
            slot = None
            if selected is not None and palette_index is not None and selected[i]:
                slot = int(palette_index[i])
            out.append(PopulationEntry((int(r), int(g), int(b)), int(n), slot))
        return out

    def sorted_by_count(self) -> "PopulationTable":
        """New table ordered by descending count; ties keep their current order."""
        order = np.argsort(-self.counts, kind="stable")
        return PopulationTable(self.colours[order], self.counts[order])

    def top_colours(self, n: int) -> U8Rows:
        """The n most frequent colours, most frequent first."""
        return self.sorted_by_count().colours[: max(0, int(n))].copy()


__all__ = ["PopulationTable", "unpack_rows"]
