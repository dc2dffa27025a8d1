from __future__ import annotations

"""
Shared utilities for colour_quant.

Logging is plain print() with a short prefix per level:
  log(msg)        msg
  debug_log(msg)  [debug] msg
  warn(msg)       [warn] msg
  error(msg)      [error] msg  (stderr)

Also: duration / key-value formatting for one-line summaries, and the image
metrics used by the command line tool.
"""

import sys
from typing import Any, Iterable, List, Optional, TextIO, Tuple

import numpy as np

from .core_types import IndexedImage, U8Image


# Formatting


def format_duration(seconds: float) -> str:
    """'12.3ms', '4.56s' or '2m 5s'."""
    if seconds >= 60.0:
        whole = int(round(seconds))
        return f"{whole // 60}m {whole % 60}s"
    if seconds >= 1.0:
        return f"{seconds:.2f}s"
    return f"{seconds * 1000.0:.1f}ms"


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, (int, np.integer)):
        return f"{int(value):,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".") or "0"
    return str(value)


def format_pairs(pairs: Iterable[Tuple[str, Any]], sep: str = "  ") -> str:
    """'Name: value' for each pair, bools as on/off and ints with thousands separators."""
    return sep.join(f"{name}: {_format_value(value)}" for name, value in pairs)


# Image metrics / ops


def mean_squared_error(a: U8Image, b: U8Image) -> float:
    """Mean squared per-channel error between two same-sized RGB images."""
    if a.shape != b.shape:
        raise ValueError(f"shape mismatch {a.shape} vs {b.shape}")
    if a.size == 0:
        return 0.0
    diff = a.astype(np.int64) - b.astype(np.int64)
    return float(np.mean(diff * diff))


def add_noise_rgb(
    image: U8Image, magnitude: int, rng: Optional[np.random.Generator] = None
) -> U8Image:
    """Add uniform per-channel noise in [-magnitude, magnitude]. Returns a new image."""
    if magnitude <= 0:
        return image.copy()
    rng = rng if rng is not None else np.random.default_rng()
    noise = rng.integers(-magnitude, magnitude + 1, size=image.shape, dtype=np.int64)
    return np.clip(image.astype(np.int64) + noise, 0, 255).astype(np.uint8)


def colour_usage_report(image: IndexedImage) -> List[Tuple[str, int]]:
    """
    Pixel count per palette entry, as (hex, count) sorted by count descending.
    Unused entries are left out.
    """
    counts = np.bincount(
        image.indices.reshape(-1).astype(np.intp), minlength=len(image.palette)
    )
    report: List[Tuple[str, int]] = []
    for j in np.argsort(-counts, kind="stable").tolist():
        if counts[j] == 0:
            break
        r, g, b = image.palette[j]
        report.append((f"#{r:02x}{g:02x}{b:02x}", int(counts[j])))
    return report


# Logging


def line_buffer_stdout() -> None:
    """Switch stdout to line buffering where the stream supports reconfigure()."""
    reconfigure = getattr(sys.stdout, "reconfigure", None)
    if not callable(reconfigure):
        return
    try:
        reconfigure(line_buffering=True, write_through=True)
    except (OSError, ValueError):
        return


def _emit(prefix: str, message: str, stream: Optional[TextIO] = None) -> None:
    text = f"{prefix} {message}" if prefix else message
    print(text, file=stream if stream is not None else sys.stdout, flush=True)


def log(message: str) -> None:
    _emit("", message)


def debug_log(message: str) -> None:
    _emit("[debug]", message)


def warn(message: str) -> None:
    _emit("[warn]", message)


def error(message: str) -> None:
    _emit("[error]", message, sys.stderr)


def log_settings(section: str, pairs: Iterable[Tuple[str, Any]], debug: bool = False) -> None:
    """
    One settings line, e.g.
      [run] Colours: 256  Dither: floyd_steinberg  Space: RGB  Fast: off
    Goes through debug_log() when debug is set.
    """
    line = f"[{section}] {format_pairs(pairs)}"
    if debug:
        debug_log(line)
    else:
        log(line)


def log_heading(title: str) -> None:
    log(f"\n=== {title} ===")


__all__ = [
    # formatting
    "format_duration",
    "format_pairs",
    # metrics / ops
    "mean_squared_error",
    "add_noise_rgb",
    "colour_usage_report",
    # logging
    "line_buffer_stdout",
    "log",
    "debug_log",
    "warn",
    "error",
    "log_settings",
    "log_heading",
]
