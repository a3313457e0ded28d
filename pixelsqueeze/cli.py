from __future__ import annotations

import argparse
import logging
from pathlib import Path

from . import __version__
from .batch import iter_images, prepare_output_dir, process_batch
from .errors import PixelSqueezeError
from .report import build_report, render_banner, render_results, save_report_json
from .settings import OUTPUT_FORMATS, CompressionRequest, QualityEstimate, validate_request

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pixelsqueeze",
        description=(
            "PixelSqueeze - image compression that reduces file sizes while keeping quality. "
            "Supports JPEG, PNG and WebP output with batch processing."
        ),
    )
    p.add_argument("input", help="Input file or directory path")

    # Output
    p.add_argument("-o", "--output", default="compressed", help="Output directory (default: ./compressed)")
    p.add_argument("-f", "--format", choices=OUTPUT_FORMATS, default="jpeg", help="Output format (default: jpeg)")
    p.add_argument("-r", "--recursive", action="store_true", help="Recursive directory processing")

    # Encoder knobs
    p.add_argument("-q", "--quality", type=int, default=65, help="Compression quality (1-100), default 65")
    p.add_argument(
        "--min-savings",
        type=float,
        default=5.0,
        help="Minimum compression savings percentage to keep file (default: 5)",
    )

    # Resize
    p.add_argument("--max-width", type=int, default=None, help="Maximum width for resizing")
    p.add_argument("--max-height", type=int, default=None, help="Maximum height for resizing")

    # JPEG skip heuristic
    p.add_argument(
        "--skip-margin",
        type=int,
        default=10,
        help="Re-encode a JPEG only if quality is this far below its estimated quality (default: 10)",
    )
    p.add_argument("--no-skip-heuristic", action="store_true", help="Always re-encode JPEG input")

    # Run
    p.add_argument("-j", "--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    p.add_argument("--report", default=None, help="Also write a JSON report to this path")
    p.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-v info, -vv debug)")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return p


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")


def request_from_args(args: argparse.Namespace) -> CompressionRequest:
    return CompressionRequest(
        output_dir=Path(args.output),
        input_path=Path(args.input),
        output_format=args.format,
        quality=int(args.quality),
        max_width=args.max_width,
        max_height=args.max_height,
        min_savings=float(args.min_savings),
        estimate=QualityEstimate(margin=int(args.skip_margin), enabled=not args.no_skip_heuristic),
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        request = validate_request(request_from_args(args))
        prepare_output_dir(request.output_dir)
    except PixelSqueezeError as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        return 2

    print(render_banner(__version__))

    files = list(iter_images(request.input_path, recursive=args.recursive, exclude_dir=request.output_dir))
    if files:
        print(f"Found {len(files)} image{'' if len(files) == 1 else 's'} to process\n")

    def _progress(done: int, total: int) -> None:
        logger.info("[%d/%d] done", done, total)

    stats = process_batch(files, request, workers=args.workers, progress_callback=_progress)

    print(render_results(stats))

    if args.report:
        report_path = Path(args.report)
        save_report_json(build_report(stats), report_path)
        print("Report written:", report_path)

    return 0
