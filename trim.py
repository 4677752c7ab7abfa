#!/usr/bin/env python3
"""
printtrim — CLI entry point.

Finds the crop box of print-production PDF pages from their crop marks,
strips bleed and registration marks, and maps the remaining layout
relative to the trim area.  Optionally aligns that layout with a scan of
the page.

Usage::

    python trim.py input.pdf
    python trim.py proof.pdf --pages 2-4 --json marks.json
    python trim.py proof.pdf --pages 1 --align-to scan.png --debug-dir debug/
    python trim.py flyer.pdf --bounds largest -v 2

Verbosity levels::

    -v 0   Quiet — warnings and errors only.
    -v 1   Normal — per-page summaries and progress bars (default).
    -v 2   Debug — every geometric decision.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from trimming.mapping.models import BoundsMode
from trimming.pipeline import TrimConfig, TrimPipeline

logger = logging.getLogger("trimming")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

_BOUNDS_CHOICES = {mode.value: mode for mode in BoundsMode}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _parse_page_range(value: str):
    """
    Parse a 1-based page range string (e.g. ``"3-10"``) into a
    0-based ``(start, end)`` tuple.

    Raises:
        argparse.ArgumentTypeError: On malformed input.
    """
    parts = value.split("-")
    try:
        start = int(parts[0])
        end = int(parts[1]) if len(parts) > 1 else start
    except (ValueError, IndexError):
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Use N or N-M (1-based)."
        )
    if start < 1 or end < start:
        raise argparse.ArgumentTypeError(
            f"Invalid page range '{value}'. Start must be >= 1 and end >= start."
        )
    return (start - 1, end - 1)


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all pipeline options."""
    p = argparse.ArgumentParser(
        description="Detect crop marks and map PDF layout relative to the trim box.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            "  python trim.py proof.pdf\n"
            "  python trim.py proof.pdf --pages 2-4 --json marks.json\n"
            "  python trim.py proof.pdf --pages 1 --align-to scan.png --debug-dir debug/\n"
            "  python trim.py flyer.pdf --bounds largest -v 2\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument("input", help="Path to the input PDF file")

    p.add_argument(
        "--pages",
        type=_parse_page_range,
        default=None,
        metavar="N-M",
        help="Page range, 1-based inclusive (e.g. 1-10). Default: all.",
    )

    # -- Detection ---------------------------------------------------------
    detect = p.add_argument_group("detection")
    detect.add_argument(
        "--bounds",
        choices=sorted(_BOUNDS_CHOICES),
        default=BoundsMode.CROP_MARKS.value,
        help="Reference box for the relative map: crop marks, largest "
        "rectangle, or content bounds (default: crop)",
    )
    detect.add_argument(
        "--allow-estimate",
        action="store_true",
        help="Estimate the crop box from corner ticks when strict "
        "crop-mark detection fails",
    )
    detect.add_argument(
        "--proximity",
        type=float,
        default=None,
        metavar="PT",
        help="Largest extent of a crop-mark L pair in points (default: 50)",
    )

    # -- Alignment ---------------------------------------------------------
    align = p.add_argument_group("alignment")
    align.add_argument(
        "--align-to",
        default=None,
        metavar="IMAGE",
        help="Scan or raster of the page to align the layout against (uses Tesseract)",
    )
    align.add_argument(
        "--min-confidence",
        type=float,
        default=30.0,
        metavar="FLOAT",
        help="Minimum OCR word confidence, 0-100 (default: 30)",
    )

    # -- Debug / output control --------------------------------------------
    debug = p.add_argument_group("debug & output")
    debug.add_argument(
        "--dpi",
        type=int,
        default=150,
        help="Rasterization resolution for debug renders (default: 150)",
    )
    debug.add_argument(
        "--debug-dir",
        default=None,
        metavar="DIR",
        help="Save relative-map overlays (and cropped scans) to DIR",
    )
    debug.add_argument(
        "--json",
        default=None,
        metavar="PATH",
        help="Write per-page results as JSON to PATH",
    )
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the ``trimming`` and ``core`` loggers.

    At verbosity 0 (WARNING), uses a minimal format.  At 2 (DEBUG),
    includes timestamps and the module name for traceability.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    for name in ("trimming", "core"):
        log = logging.getLogger(name)
        log.setLevel(level)
        log.handlers.clear()
        log.addHandler(handler)
        log.propagate = False

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("PIL", "pytesseract"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main():
    """Parse arguments, configure logging, and run the pipeline."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)
    disable_tqdm = args.no_progress or args.verbose == 0

    input_path = Path(args.input)
    if not input_path.exists():
        parser.error(f"Input file not found: {input_path}")
    if input_path.suffix.lower() != ".pdf":
        parser.error(f"Input must be a PDF file: {input_path}")
    if args.align_to and not Path(args.align_to).exists():
        parser.error(f"Alignment image not found: {args.align_to}")
    if args.dpi <= 0:
        parser.error("--dpi must be positive")

    config = TrimConfig(
        page_range=args.pages,
        bounds_mode=_BOUNDS_CHOICES[args.bounds],
        align_image=args.align_to,
        dpi=args.dpi,
        debug_dir=args.debug_dir,
        allow_estimate=args.allow_estimate,
        disable_tqdm=disable_tqdm,
    )
    if args.proximity is not None:
        config.marks.proximity = args.proximity
    config.mapping.min_confidence = args.min_confidence

    # Log run header
    logger.info("printtrim")
    logger.info("  Input:  %s", input_path)
    if config.page_range:
        s, e = config.page_range
        logger.info("  Pages:  %d–%d", s + 1, e + 1)
    logger.info("  Bounds: %s", config.bounds_mode.name)
    if config.align_image:
        logger.info("  Align:  %s", config.align_image)
    if config.debug_dir:
        logger.info("  Debug:  %s", config.debug_dir)

    pipeline = TrimPipeline(config)
    try:
        result = pipeline.run(str(input_path))
    except RuntimeError as e:
        logger.error("%s", e)
        sys.exit(2)

    if args.json:
        out = Path(args.json)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)
        logger.info("Results written to %s", out)

    if result.pages_processed and not any(p.succeeded for p in result.pages):
        logger.warning("No page produced a relative map")
        sys.exit(1)


if __name__ == "__main__":
    main()
