"""
Tunables used across the project.

- Palette construction (seeding threshold and counts)
- Error-diffusion behaviour
- Population table capacity
- Vectorised lookup chunking
"""
from __future__ import annotations

# =========================
# Palette construction
# =========================

# Seeds closer than this (squared RGB distance) to an accepted seed are skipped.
# +/-40 in each component = 3 * 40 * 40 = 4800.
SEED_MIN_DISTANCE_SQ = 4800

# At most this many of the most frequent colours seed the greedy builder.
MAX_SEED_COLOURS = 16

# Seed count is desired_num_colors // SEED_FRACTION_DIVISOR (at least 1).
SEED_FRACTION_DIVISOR = 4

# Initial value of the per-candidate distance cache (no palette colour seen yet).
DISTANCE_UNKNOWN = 0xFFFFFFFF

# Candidates examined per batch while searching for the next palette colour.
GROWTH_BATCH = 1024

# =========================
# Dithering
# =========================

# Palettes smaller than this feed only 3/4 of the pending error into the match
# (Floyd-Steinberg, Sierra, Burkes). Atkinson always drops 1/4 by construction.
ERROR_REDUCTION_MAX_COLOURS = 64

# Squared distance reported for a missing second-nearest colour (one-colour palette).
NO_SECOND_MATCH_DIST_SQ = 0xFFFFFFFF

# =========================
# Population table
# =========================

# Distinct colours the population table is rated for. Past this the table still
# counts correctly but the result is flagged as over capacity.
POPULATION_CAPACITY = 1_122_419

# =========================
# Vectorised helpers
# =========================

# Pixels per block for nearest-colour searches (bounds the (N, P) distance matrix).
LOOKUP_CHUNK = 16_384

__all__ = [
    "SEED_MIN_DISTANCE_SQ",
    "MAX_SEED_COLOURS",
    "SEED_FRACTION_DIVISOR",
    "DISTANCE_UNKNOWN",
    "GROWTH_BATCH",
    "ERROR_REDUCTION_MAX_COLOURS",
    "NO_SECOND_MATCH_DIST_SQ",
    "POPULATION_CAPACITY",
    "LOOKUP_CHUNK",
]
