from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .results import STATUS_SKIPPED, RunStatistics


SUPPORTED_FORMATS_TEXT = "JPEG, PNG, WebP, BMP, TIFF, GIF"

_UNITS = ("kB", "MB", "GB", "TB")


def format_size(n: int) -> str:
    """Decimal units: 1500 -> '1.50 kB'."""
    if n < 1000:
        return f"{n} B"
    value = float(n)
    for unit in _UNITS[:-1]:
        value /= 1000.0
        if value < 1000.0:
            return f"{value:.2f} {unit}"
    return f"{value / 1000.0:.2f} {_UNITS[-1]}"


def _plural(n: int) -> str:
    return "" if n == 1 else "s"


def _truncate(name: str, width: int = 28) -> str:
    if len(name) > width:
        return name[: width - 3] + "..."
    return name


def render_banner(version: str) -> str:
    rule = "-" * 42
    return "\n".join([
        rule,
        f"PixelSqueeze v{version}",
        "High-performance image compression",
        rule,
    ])


def render_no_images() -> str:
    return "\n".join([
        "",
        "No image files found",
        "",
        f"Supported formats: {SUPPORTED_FORMATS_TEXT}",
        "",
        "Suggestions:",
        "  - Check if the path is correct",
        "  - Use --recursive flag for subdirectories",
        "",
    ])


def render_results(stats: RunStatistics) -> str:
    if stats.files_found == 0:
        return render_no_images()

    lines: List[str] = [""]

    if stats.file_results:
        lines += ["Individual File Results:", ""]
        lines.append(f"{'#':<4} {'Filename':<30} {'Original':<12} {'Compressed':<12} {'Saved':<12} {'Status':<15}")
        lines.append("-" * 95)

        for i, r in enumerate(stats.file_results, start=1):
            if r.status == STATUS_SKIPPED or r.savings_percent == 0:
                status = r.status
            else:
                status = f"{r.status} ({abs(r.savings_percent):.1f}%)"
            saved = format_size(r.saved_bytes) if r.saved_bytes > 0 else "-"
            lines.append(
                f"{str(i) + '.':<4} {_truncate(r.filename):<30} {format_size(r.original_size):<12} "
                f"{format_size(r.final_size):<12} {saved:<12} {status}"
            )

        lines += ["", "-" * 95]

    lines += ["", "Summary:", ""]
    lines.append(f"{'Files processed:':<25} {stats.files_processed}")
    lines.append(f"{'Files compressed:':<25} {stats.compressed_count}")
    lines.append(f"{'Files skipped:':<25} {stats.skipped_count}")
    lines.append(f"{'Total original size:':<25} {format_size(stats.original_size)}")
    lines.append(f"{'Total compressed size:':<25} {format_size(stats.final_size)}")

    savings = stats.savings_percent
    if savings > 0:
        change = f"{savings:.1f}% smaller (saved {format_size(stats.saved_bytes)})"
    elif savings < 0:
        change = f"{-savings:.1f}% larger"
    else:
        change = "No change"
    lines.append(f"{'Space change:':<25} {change}")
    lines.append(f"{'Compression ratio:':<25} {stats.compression_ratio:.2f}:1")

    if stats.errors:
        lines += ["", f"Warning: {len(stats.errors)} error{_plural(len(stats.errors))} encountered:"]
        lines += [f"  - {e}" for e in stats.errors]
        if stats.files_processed == 0:
            lines.append(f"All {len(stats.errors)} file{_plural(len(stats.errors))} failed to process")

    if stats.files_processed > 0:
        n = stats.files_processed
        lines.append("")
        if savings > 0:
            lines.append(
                f"Successfully compressed {n} file{_plural(n)} and saved {format_size(stats.saved_bytes)} of storage space"
            )
        else:
            lines.append(f"Successfully processed {n} file{_plural(n)}")

    lines.append("")
    return "\n".join(lines)


@dataclass(frozen=True)
class FileReport:
    filename: str
    src_path: str
    out_path: Optional[str]
    original_size: int
    final_size: int
    saved_bytes: int
    savings_percent: float
    status: str
    reason: Optional[str]


@dataclass(frozen=True)
class RunReport:
    created_utc: str
    summary: dict
    files: List[FileReport]
    errors: List[dict]


def build_report(stats: RunStatistics) -> RunReport:
    created_utc = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")

    files: List[FileReport] = []
    for r in stats.file_results:
        files.append(
            FileReport(
                filename=r.filename,
                src_path=str(r.src_path),
                out_path=str(r.out_path) if r.out_path else None,
                original_size=r.original_size,
                final_size=r.final_size,
                saved_bytes=r.saved_bytes,
                savings_percent=round(r.savings_percent, 2),
                status=r.status,
                reason=r.reason,
            )
        )

    summary_dict = {
        "files_found": stats.files_found,
        "files_processed": stats.files_processed,
        "files_compressed": stats.compressed_count,
        "files_skipped": stats.skipped_count,
        "files_errored": len(stats.errors),
        "original_size": stats.original_size,
        "final_size": stats.final_size,
        "saved_bytes": stats.saved_bytes,
        "savings_percent": round(stats.savings_percent, 2),
        "compression_ratio": round(stats.compression_ratio, 2),
    }

    errors = [{"filename": e.filename, "message": e.message} for e in stats.errors]

    return RunReport(created_utc=created_utc, summary=summary_dict, files=files, errors=errors)


def save_report_json(report: RunReport, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(asdict(report), f, indent=2, ensure_ascii=False)
