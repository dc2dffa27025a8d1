# colour_quant/palette_builder.py
from __future__ import annotations

"""
Greedy palette construction from a population table.

- Seed with the most frequent colours (skipping near-duplicates), or with a
  caller palette.
- Grow one colour at a time, always taking the candidate with the largest
  count * (squared distance to the nearest palette colour).
- A per-candidate distance bound lets most candidates be skipped without
  computing any distance (branch and bound).

Exports:
  PaletteBuilder(table, desired_num_colors, seed_palette=None, debug=False).build() / .entries()
  build_palette(table, desired_num_colors, seed_palette=None, *, debug=False)
  build_palette_fast(table, desired_num_colors, *, debug=False)
"""

from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from .constants import (
    DISTANCE_UNKNOWN,
    GROWTH_BATCH,
    MAX_SEED_COLOURS,
    SEED_FRACTION_DIVISOR,
    SEED_MIN_DISTANCE_SQ,
)
from .core_types import Palette, PopulationEntry, pack_rows
from .population import PopulationTable
from .utils import debug_log, format_pairs, warn

# Palette columns compared per block in _min_distance_sq.
_PALETTE_BLOCK = 256


def _min_distance_sq(points: np.ndarray, palette_rows: np.ndarray) -> NDArray[np.int64]:
    """Smallest squared distance from each point (k,3) to any palette row (p,3)."""
    best = np.full(points.shape[0], DISTANCE_UNKNOWN, dtype=np.int64)
    for start in range(0, palette_rows.shape[0], _PALETTE_BLOCK):
        block = palette_rows[start : start + _PALETTE_BLOCK]
        diff = points[:, None, :] - block[None, :, :]
        np.minimum(best, np.sum(diff * diff, axis=2).min(axis=1), out=best)
    return best


class _DistanceCache:
    """
    Upper bound on each candidate's squared distance to the palette.

    min_dist[i] is the minimum over the first checked[i] palette colours, so it
    only ever shrinks and never undershoots the true distance to the palette.
    """

    def __init__(self, size: int) -> None:
        self.min_dist = np.full(size, DISTANCE_UNKNOWN, dtype=np.int64)
        self.checked = np.zeros(size, dtype=np.int64)

    def bounds(self, idx: np.ndarray, counts: np.ndarray) -> NDArray[np.int64]:
        return self.min_dist[idx] * counts[idx]

    def tighten(self, idx: np.ndarray, colours: np.ndarray, palette_rows: np.ndarray) -> None:
        """Bring the entries idx up to date with the whole palette."""
        if idx.size == 0:
            return
        start = int(self.checked[idx].min())
        fresh = palette_rows[start:]
        if fresh.shape[0]:
            self.min_dist[idx] = np.minimum(
                self.min_dist[idx], _min_distance_sq(colours[idx], fresh)
            )
        self.checked[idx] = palette_rows.shape[0]


class PaletteBuilder:
    """
    Builds one palette from one population table.

    Selection is tracked explicitly: selected[i] marks a table row already in
    the palette and palette_index[i] is where it went. Counts are never touched.
    """

    def __init__(
        self,
        table: PopulationTable,
        desired_num_colors: int,
        seed_palette: Optional[Palette] = None,
        *,
        debug: bool = False,
    ) -> None:
        self.desired = int(desired_num_colors)
        self.seed_palette = seed_palette if seed_palette is not None and len(seed_palette) else None
        self.debug = debug
        self.source = table

        # Seeding by frequency scans in count order; a caller palette keeps table order.
        self.table = table if self.seed_palette is not None else table.sorted_by_count()
        self.colours = self.table.colours.astype(np.int64)
        self.counts = self.table.counts
        n = len(self.table)
        self.selected = np.zeros(n, dtype=bool)
        self.palette_index = np.zeros(n, dtype=np.int64)
        self.palette: List[np.ndarray] = []

        self.seed_count = 0
        self.growth_steps = 0
        self.evaluated = 0
        self.pruned = 0

    # Selection bookkeeping

    def _select(self, i: int, palette_slot: Optional[int] = None) -> None:
        self.selected[i] = True
        if palette_slot is None:
            self.palette_index[i] = len(self.palette)
            self.palette.append(self.colours[i])
        else:
            self.palette_index[i] = palette_slot

    def entries(self) -> List[PopulationEntry]:
        """Table rows in scan order, with selected set on the ones in the palette."""
        return self.table.entries(self.selected, self.palette_index)

    def _palette_rows(self) -> np.ndarray:
        if not self.palette:
            return np.zeros((0, 3), dtype=np.int64)
        return np.stack(self.palette)

    # Seeding

    def seed_from_population(self) -> None:
        """Accept the most frequent colours that are not near an accepted seed."""
        ncp = max(1, self.desired // SEED_FRACTION_DIVISOR)
        ncp = min(ncp, self.desired, MAX_SEED_COLOURS)
        for i in range(len(self.table)):
            if len(self.palette) >= ncp:
                break
            if self.palette:
                nearest = int(_min_distance_sq(self.colours[i : i + 1], self._palette_rows())[0])
                if nearest < SEED_MIN_DISTANCE_SQ:
                    continue
            self._select(i)
        self.seed_count = len(self.palette)

    def seed_from_palette(self, seed: Palette) -> None:
        """Copy up to desired seed colours; matching table rows count as selected."""
        rows = seed.rgb[: self.desired].astype(np.int64)
        self.palette = [row for row in rows]

        slot_of = {}
        for j, packed in enumerate(pack_rows(rows).tolist()):
            slot_of.setdefault(packed, j)
        for i, packed in enumerate(pack_rows(self.colours).tolist()):
            slot = slot_of.get(packed)
            if slot is not None:
                self._select(i, palette_slot=slot)
        self.seed_count = len(self.palette)

    # Growth

    def grow(self, cache: _DistanceCache) -> bool:
        """Append the fittest unselected colour. False when none is left."""
        candidates = np.flatnonzero(~self.selected)
        if candidates.size == 0:
            return False

        bounds = cache.bounds(candidates, self.counts)
        order = candidates[np.argsort(-bounds, kind="stable")]
        palette_rows = self._palette_rows()

        best_fit = 0
        best_idx = -1
        for start in range(0, order.size, GROWTH_BATCH):
            batch = order[start : start + GROWTH_BATCH]
            batch_bounds = cache.bounds(batch, self.counts)
            # Sorted by bound: nothing from here on can beat the current best.
            if best_idx >= 0 and batch_bounds[0] < best_fit:
                self.pruned += order.size - start
                break
            live = batch[batch_bounds >= best_fit] if best_idx >= 0 else batch
            self.pruned += batch.size - live.size
            self.evaluated += live.size

            cache.tighten(live, self.colours, palette_rows)
            fitness = cache.min_dist[live] * self.counts[live]
            top = int(fitness.max())
            winner = int(live[fitness == top].min())
            if best_idx < 0 or top > best_fit or (top == best_fit and winner < best_idx):
                best_fit = top
                best_idx = winner

        self._select(best_idx)
        self.growth_steps += 1
        return True

    def build(self) -> Optional[Palette]:
        table = self.table
        if len(table) == 0 or self.desired <= 0:
            return None
        if len(table) <= self.desired:
            # Every colour fits; keep first-occurrence order.
            return Palette(self.source.colours.copy())

        if self.seed_palette is not None:
            self.seed_from_palette(self.seed_palette)
        else:
            self.seed_from_population()

        cache = _DistanceCache(len(table))
        while len(self.palette) < self.desired:
            if not self.grow(cache):
                break

        if self.debug:
            debug_log(
                format_pairs(
                    [
                        ("Candidates", len(table)),
                        ("Seeds", self.seed_count),
                        ("Growth steps", self.growth_steps),
                        ("Evaluated", int(self.evaluated)),
                        ("Pruned", int(self.pruned)),
                    ]
                )
            )
        return Palette(self._palette_rows().astype(np.uint8))


def build_palette(
    table: Optional[PopulationTable],
    desired_num_colors: int,
    seed_palette: Optional[Palette] = None,
    *,
    debug: bool = False,
) -> Optional[Palette]:
    """
    Greedy palette of at most desired_num_colors colours for table.
    Returns None for an empty table or a non-positive colour count.
    """
    if table is None or len(table) == 0 or desired_num_colors <= 0:
        return None
    if len(table) <= desired_num_colors:
        return Palette(table.colours.copy())
    try:
        return PaletteBuilder(table, desired_num_colors, seed_palette, debug=debug).build()
    except MemoryError:
        warn(f"out of memory building a {desired_num_colors}-colour palette")
        return None


def build_palette_fast(
    table: Optional[PopulationTable], desired_num_colors: int, *, debug: bool = False
) -> Optional[Palette]:
    """
    The desired_num_colors most frequent colours, with no distance checks.
    Near-duplicate colours can both be taken; this is the speed/quality trade.
    """
    if table is None or len(table) == 0 or desired_num_colors <= 0:
        return None
    if len(table) <= desired_num_colors:
        return Palette(table.colours.copy())
    if debug:
        debug_log(f"fast palette: top {desired_num_colors} of {len(table):,} colours")
    return Palette(table.top_colours(desired_num_colors))


__all__ = ["PaletteBuilder", "build_palette", "build_palette_fast"]
