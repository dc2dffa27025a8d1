#!/usr/bin/env python3
"""
quantize_image.py
Reduce images to a bounded palette with optional dithering.

Usage:
  python quantize_image.py SRC --outdir DIR --colours N --dither [none|floyd_steinberg|sierra|burkes|atkinson|random]
                           --space [rgb|hsv|yiq|ycbcr] --fast --seed-palette IMAGE --noise MAG --jobs N --seed N --debug

Strategies:
  greedy (default) : frequency seeds, then greedy growth by count x distance.
  --fast           : the N most frequent colours. Quicker, can keep near-duplicates.

Input:
  Any Pillow-readable image, or a folder of .png/.jpg/.jpeg/.webp/.bmp/.gif files.
  Alpha is dropped.

Output:
  <stem>_quant.png next to the input (or in --outdir). Palette PNG for up to
  256 colours, RGB PNG otherwise.

Notes:
  Quantization lives in colour_quant; shared logging helpers in colour_quant.utils.
  Folders are processed on a ProcessPoolExecutor with --jobs workers; each
  worker captures its own stdout so per-file output stays in one block.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import time
from contextlib import redirect_stdout
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
from PIL import UnidentifiedImageError

from colour_quant.colour_convert import ColourSpace, colourspace_name
from colour_quant.core_types import Palette
from colour_quant.dither import DitherMode
from colour_quant.image_io import IMAGE_SUFFIXES, load_image_rgb, save_indexed_image
from colour_quant.quantize import count_unique_colours, extract_full_palette, quantize_fast, quantize_full
from colour_quant.utils import (
    add_noise_rgb,
    colour_usage_report,
    debug_log,
    error,
    format_duration,
    format_pairs,
    line_buffer_stdout,
    log,
    log_heading,
    log_settings,
    mean_squared_error,
    warn,
)

OUTPUT_SUFFIX = "_quant"

# CLI args & small helpers


@dataclass(frozen=True)
class QuantOptions:
    colours: int
    dither: DitherMode
    space: ColourSpace
    fast: bool
    seed_palette: Optional[Palette]
    noise: int
    seed: Optional[int]
    debug: bool
    outdir: Optional[Path]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="colour-quant",
        description="Quantize image(s) to a bounded palette with optional dithering.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Write outputs here instead of next to the inputs"
    )
    parser.add_argument(
        "--colours",
        "--colors",
        dest="colours",
        type=int,
        default=256,
        help="Palette size (default 256)",
    )
    parser.add_argument(
        "--dither",
        choices=[m.label for m in DitherMode],
        default=DitherMode.NONE.label,
        help="Dither algorithm.",
    )
    parser.add_argument(
        "--space",
        choices=[s.name.lower() for s in ColourSpace],
        default="rgb",
        help="Colour space used to judge nearest colours.",
    )
    parser.add_argument(
        "--fast", action="store_true", help="Top-N palette instead of greedy growth"
    )
    parser.add_argument(
        "--seed-palette",
        type=Path,
        default=None,
        help="Seed the palette with every colour of this image",
    )
    parser.add_argument(
        "--noise",
        type=int,
        default=0,
        help="Add uniform noise in [-MAG, MAG] per channel before quantizing",
    )
    parser.add_argument("--jobs", type=int, default=1, help="Files processed in parallel")
    parser.add_argument(
        "--seed", type=int, default=None, help="Random seed (noise and random dither)"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with src, outdir, colours, dither, space, fast,
      seed_palette, noise, jobs, seed and debug.
    """
    args = build_arg_parser().parse_args(argv)
    if args.colours <= 0:
        build_arg_parser().error("--colours must be positive")
    if args.jobs <= 0:
        build_arg_parser().error("--jobs must be positive")
    return args


def output_path_for(src_path: Path, outdir: Optional[Path]) -> Path:
    name = f"{src_path.stem}{OUTPUT_SUFFIX}.png"
    return (outdir / name) if outdir else src_path.with_name(name)


def collect_images(folder: Path) -> List[Path]:
    """Image files directly inside folder, skipping earlier outputs, sorted by name."""
    files = [
        p
        for p in folder.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_SUFFIXES
        and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files.sort(key=lambda p: p.name.lower())
    return files


# Per-file processing


def _process_single_image(src_path: Path, opts: QuantOptions) -> bool:
    """
    load -> optional noise -> quantize -> save -> report.
    Returns False when the image could not be read or quantized.
    """
    t_start = time.perf_counter()
    log_heading(src_path.name)

    try:
        rgb_in = load_image_rgb(src_path)
    except (UnidentifiedImageError, OSError) as e:
        error(f"cannot read {src_path}: {e}")
        return False
    height, width = rgb_in.shape[0], rgb_in.shape[1]
    t_loaded = time.perf_counter()

    rng = np.random.default_rng(opts.seed)
    source = add_noise_rgb(rgb_in, opts.noise, rng) if opts.noise > 0 else rgb_in
    unique = count_unique_colours(source)
    if opts.debug:
        debug_log(
            format_pairs(
                [("Loaded", f"{width}x{height}"), ("Unique colours", unique), ("Noise", opts.noise)]
            )
        )

    if opts.fast:
        result = quantize_fast(source, opts.colours, opts.dither, rng=rng, debug=opts.debug)
    else:
        result = quantize_full(
            source,
            opts.colours,
            opts.seed_palette,
            opts.dither,
            opts.space,
            rng=rng,
            debug=opts.debug,
        )
    t_quant = time.perf_counter()
    if result is None:
        error(f"quantization failed for {src_path.name}")
        return False

    out_path = save_indexed_image(output_path_for(src_path, opts.outdir), result)
    t_saved = time.perf_counter()

    mse = mean_squared_error(source, result.to_rgb())
    log(
        f"Wrote {out_path.name} | size={width}x{height} | unique={unique:,} "
        f"| palette_size={len(result.palette)} | mse={mse:.2f}"
    )
    if opts.debug:
        debug_log("Colours used (top 10):")
        for hex_code, count in colour_usage_report(result)[:10]:
            debug_log(f"  {hex_code}: {count:,}")
        debug_log(
            f"Total {format_duration(t_saved - t_start)}  "
            f"(load={format_duration(t_loaded - t_start)}, "
            f"quantize={format_duration(t_quant - t_loaded)}, "
            f"save={format_duration(t_saved - t_quant)})"
        )
    else:
        log(f"Total time {format_duration(t_saved - t_start)}")
    return True


def _process_one_captured(path: Path, opts: QuantOptions) -> tuple:
    """Run _process_single_image with stdout captured; returns (text, ok)."""
    buf = io.StringIO()
    with redirect_stdout(buf):
        ok = _process_single_image(path, opts)
    return buf.getvalue(), ok


def _load_seed_palette(path: Optional[Path]) -> Optional[Palette]:
    """Every colour of the image at path; exits with status 1 when it cannot be read."""
    if path is None:
        return None
    try:
        rgb = load_image_rgb(path)
    except (UnidentifiedImageError, OSError) as e:
        error(f"cannot read seed palette {path}: {e}")
        sys.exit(1)
    palette = extract_full_palette(rgb)
    if palette is None:
        warn(f"seed palette image {path} is empty; ignoring it")
    return palette


# Entry point


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point.

    SRC may be one image or a folder. Folders run --jobs files at a time and
    print each file's block in input order.
    """
    line_buffer_stdout()
    args = parse_cli_args(argv)

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        sys.exit(2)
    if args.seed_palette is not None and not args.seed_palette.exists():
        error(f"not found: {args.seed_palette}")
        sys.exit(2)
    if args.outdir is not None:
        args.outdir.mkdir(parents=True, exist_ok=True)

    opts = QuantOptions(
        colours=args.colours,
        dither=DitherMode.parse(args.dither),
        space=ColourSpace.parse(args.space),
        fast=args.fast,
        seed_palette=_load_seed_palette(args.seed_palette),
        noise=max(0, args.noise),
        seed=args.seed,
        debug=args.debug,
        outdir=args.outdir,
    )

    cpu_cores = os.cpu_count() or 1
    log_settings(
        "run",
        [
            ("CPU cores", cpu_cores),
            ("Jobs", args.jobs),
            ("Colours", opts.colours),
            ("Dither", opts.dither.label),
            ("Space", colourspace_name(opts.space)),
            ("Fast", opts.fast),
        ],
        debug=False,
    )
    if opts.seed_palette is not None and opts.debug:
        debug_log(f"seed palette: {len(opts.seed_palette)} colours from {args.seed_palette.name}")

    if src.is_dir():
        files = collect_images(src)
        if opts.debug:
            debug_log(format_pairs([("Images", len(files)), ("Jobs", args.jobs)]))

        if args.jobs == 1:
            results = [_process_single_image(p, opts) for p in files]
        else:
            with ProcessPoolExecutor(max_workers=args.jobs) as ex:
                futures = [ex.submit(_process_one_captured, p, opts) for p in files]
                blocks = [f.result() for f in futures]
            print("".join(text for text, _ in blocks), end="", flush=True)
            results = [ok for _, ok in blocks]
        if not all(results):
            sys.exit(1)
    elif not _process_single_image(src, opts):
        sys.exit(1)


if __name__ == "__main__":
    main()
