#!/usr/bin/env python3
"""
cli/compress.py
Command-line wrapper around the qtcompress package.

Usage examples:
  # compress with a fixed threshold (writes the reconstructed image)
  python cli/compress.py compress photo.jpg out/photo_qt.png --method variance --threshold 250 --min-block 4

  # let the tuner pick the threshold for a target compression ratio and record a GIF
  python cli/compress.py compress photo.jpg out/photo_qt.png --method mad --target-ratio 0.9 --gif out/photo.gif

  # answer the questions one by one
  python cli/compress.py interactive

  # list the error methods
  python cli/compress.py methods
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, List, Optional

from PIL import Image, UnidentifiedImageError

# Make sure the package can be imported when running this script directly
this_dir = Path(__file__).resolve().parent
project_root = this_dir.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from qtcompress import (
    CompressionParams,
    ErrorMethod,
    ImageCompressor,
    describe_error,
    describe_methods,
)
from qtcompress.exceptions import ImageIOError, InvalidParameterError

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_IO = 3
EXIT_INTERNAL = 4

IMAGE_EXTS = (".png", ".jpg", ".jpeg", ".bmp")

log = logging.getLogger("qtcompress.cli")


def run_compression(params: CompressionParams, in_path: str, out_path: str, gif_path: Optional[str] = None):
    print(f"[+] Input: {in_path}")
    print(f"[+] Method: {params.method.label}, min block: {params.min_block_size}, "
          + (f"target ratio: {params.target_ratio}" if params.auto_threshold else f"threshold: {params.threshold}"))
    stats = ImageCompressor(params).compress(in_path, out_path, gif_path=gif_path)
    print()
    print(stats.summary())
    print(f"[+] Wrote: {out_path}")
    if gif_path:
        print(f"[+] Wrote: {gif_path}")
    return stats


# ---------------- interactive mode ----------------
def _ask_until(ask: Callable[[str], str], prompt: str, convert: Callable[[str], object]):
    while True:
        raw = ask(prompt).strip()
        try:
            return convert(raw)
        except (ValueError, InvalidParameterError) as e:
            print(f"Error: {e}")


def _existing_image(raw: str) -> str:
    if not raw:
        raise ValueError("path cannot be empty")
    if not os.path.isfile(raw):
        raise ValueError("file does not exist")
    try:
        with Image.open(raw) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError("not a readable image") from None
    return raw


def _positive_float(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError("threshold must be positive")
    return value


def _block_size(raw: str) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError("minimum block size must be at least 1")
    return value


def _ratio(raw: str) -> float:
    value = float(raw)
    if not 0.0 <= value <= 1.0:
        raise ValueError("ratio must be between 0 and 1.0")
    return value


def _output_path(raw: str) -> str:
    if not raw:
        raise ValueError("path cannot be empty")
    if not raw.lower().endswith(IMAGE_EXTS):
        raise ValueError(f"output extension must be one of {', '.join(IMAGE_EXTS)}")
    return raw


def interactive(ask: Callable[[str], str] = input) -> int:
    print("=== Quadtree Image Compression ===")
    in_path = _ask_until(ask, "Enter the path of the image to compress: ", _existing_image)
    print(describe_methods())
    method = _ask_until(ask, f"Select error measurement method (1-{len(ErrorMethod)}): ", ErrorMethod.parse)
    threshold = _ask_until(ask, f"Threshold ({method.hint}): ", _positive_float)
    min_block = _ask_until(ask, "Minimum block size (2, 4, 8, 16, ...): ", _block_size)
    print("Target compression ratio (0-1.0), 0 disables automatic threshold adjustment.")
    ratio = _ask_until(ask, "Target ratio: ", _ratio)
    out_path = _ask_until(ask, "Output image path: ", _output_path)
    gif_path = ask("GIF path for the compression process (empty to skip): ").strip() or None
    if gif_path and not gif_path.lower().endswith(".gif"):
        gif_path += ".gif"
    params = CompressionParams.create(method, threshold=threshold, min_block_size=min_block, target_ratio=ratio)
    run_compression(params, in_path, out_path, gif_path)
    return EXIT_OK


# ---------------- argparse ----------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="compress.py", description="Quadtree image compressor CLI")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("compress", help="Compress image -> reconstructed image (+ optional GIF)")
    c.add_argument("input", help="Input image path")
    c.add_argument("output", help="Output image path (format from extension)")
    c.add_argument("--method", default="variance",
                   help="variance | mad | max_diff | entropy | ssim, or its number (default: variance)")
    c.add_argument("--threshold", type=float, default=None, help="error threshold (default: low end of the method's range)")
    c.add_argument("--min-block", type=int, default=4, help="minimum block size in pixels")
    c.add_argument("--target-ratio", type=float, default=0.0, help="0..1, tune the threshold for this ratio (0 = off)")
    c.add_argument("--gif", default=None, help="optional GIF of the compression process")
    c.add_argument("--workers", type=int, default=1, help="processes for the four top-level quadrants")

    sub.add_parser("interactive", help="Ask for every parameter")
    sub.add_parser("methods", help="List error methods")
    return p


def _params_from_args(args) -> CompressionParams:
    method = ErrorMethod.parse(args.method)
    threshold = args.threshold if args.threshold is not None else method.suggested_range[0]
    return CompressionParams.create(method, threshold=threshold, min_block_size=args.min_block,
                                    target_ratio=args.target_ratio, workers=args.workers)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        if args.cmd == "methods":
            print(describe_methods())
        elif args.cmd == "interactive":
            try:
                return interactive()
            except EOFError:
                raise InvalidParameterError("input ended before all parameters were given") from None
        elif args.cmd == "compress":
            run_compression(_params_from_args(args), args.input, args.output, args.gif)
        return EXIT_OK
    except Exception as e:
        category, msg = describe_error(e)
        print(f"Error ({category}): {msg}", file=sys.stderr)
        if isinstance(e, InvalidParameterError):
            return EXIT_BAD_INPUT
        if isinstance(e, (ImageIOError, OSError)):
            return EXIT_IO
        log.debug("unexpected failure", exc_info=True)
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
