from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence
import logging
import os

from .engine import is_image_file, process_image
from .errors import OutputDirectoryError
from .results import RunStatistics
from .settings import CompressionRequest, validate_request

logger = logging.getLogger(__name__)


def _is_relative_to(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
        return True
    except ValueError:
        return False


def iter_images(
    path: Path,
    recursive: bool = False,
    exclude_dir: Optional[Path] = None,
) -> Iterable[Path]:
    """
    Yield supported image paths from a file or a directory.

    exclude_dir:
        If provided, any files inside this directory will be skipped.
        (Prevents re-processing output files when output_dir is inside the input.)
    """
    p = Path(path)
    exclude_resolved = exclude_dir.resolve() if exclude_dir else None

    if p.is_file():
        if not is_image_file(p):
            return
        if exclude_resolved and _is_relative_to(p.resolve(), exclude_resolved):
            return
        yield p
        return

    if not p.is_dir():
        return

    pattern = "**/*" if recursive else "*"
    for f in sorted(p.glob(pattern)):
        if not f.is_file() or not is_image_file(f):
            continue
        if exclude_resolved and _is_relative_to(f.resolve(), exclude_resolved):
            continue
        yield f


def prepare_output_dir(output_dir: Path) -> Path:
    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(f"Failed to create output directory: {output_dir} ({e})") from e
    return output_dir


def assign_output_stems(files: Sequence[Path]) -> List[str]:
    """
    Give every input its own output stem, in input order.

    The first file with a given stem keeps it; later ones become
    "photo (1)", "photo (2)", ... skipping any stem another input already
    has. Compared case-insensitively so the names also stay apart on
    case-insensitive filesystems.
    """
    taken = {f.stem.lower() for f in files}
    used: set[str] = set()
    stems: List[str] = []

    for f in files:
        stem = f.stem
        if stem.lower() in used:
            i = 1
            while True:
                candidate = f"{f.stem} ({i})"
                if candidate.lower() not in used and candidate.lower() not in taken:
                    break
                i += 1
            logger.info("%s: output name already used, writing as %s", f, candidate)
            stem = candidate
        used.add(stem.lower())
        stems.append(stem)

    return stems


def default_workers() -> int:
    return os.cpu_count() or 1


def process_batch(
    paths: Sequence[Path],
    request: CompressionRequest,
    workers: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> RunStatistics:
    """
    Compress every path on a thread pool and return the finalized totals.

    Each path ends up as exactly one outcome or one error. Run-level
    problems (bad request, unusable output dir) raise before any file is
    touched.
    """
    validate_request(request)
    prepare_output_dir(request.output_dir)

    files: List[Path] = [Path(p) for p in paths]
    total = len(files)
    stats = RunStatistics(files_found=total)

    if not files:
        return stats.finalize()

    max_workers = max(1, min(workers or default_workers(), total))
    logger.info("Processing %d file(s) with %d worker(s)", total, max_workers)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pixelsqueeze") as pool:
        futures = {
            pool.submit(process_image, p, request, stem): p
            for p, stem in zip(files, assign_output_stems(files))
        }

        for fut in as_completed(futures):
            src = futures[fut]
            try:
                outcome = fut.result()
            except Exception as e:  # any codec/filesystem failure is per-file
                logger.warning("Failed to compress %s: %s", src, e)
                done = stats.record_error(src.name, e)
            else:
                done = stats.record_outcome(outcome)

            if progress_callback:
                progress_callback(done, total)

    return stats.finalize()
