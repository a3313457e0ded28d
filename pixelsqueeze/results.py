from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import threading


STATUS_COMPRESSED = "Compressed"
STATUS_SKIPPED = "Skipped"
STATUS_ENLARGED = "Enlarged"
STATUS_NO_CHANGE = "NoChange"

STATUSES = (STATUS_COMPRESSED, STATUS_SKIPPED, STATUS_ENLARGED, STATUS_NO_CHANGE)


@dataclass(frozen=True)
class FileOutcome:
    """
    Output of processing a single image.

    Immutable once created; the run statistics own it afterwards.
    """
    filename: str
    src_path: Path
    out_path: Optional[Path]  # None if nothing was left in the output dir
    original_size: int
    final_size: int
    status: str
    savings_percent: float
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status not in STATUSES:
            raise ValueError(f"Unknown status: {self.status}")
        if self.status == STATUS_SKIPPED and self.final_size != self.original_size:
            raise ValueError("A skipped file must keep its original size")

    @property
    def saved_bytes(self) -> int:
        return max(0, self.original_size - self.final_size)


@dataclass(frozen=True)
class FileError:
    filename: str
    message: str

    def __str__(self) -> str:
        return f"{self.filename}: {self.message}"


@dataclass
class RunStatistics:
    """
    Running totals for one batch.

    Workers only touch it through record_outcome() / record_error(), both of
    which take the same lock for the in-memory update and nothing else.
    """
    files_found: int = 0
    files_processed: int = 0
    original_size: int = 0
    final_size: int = 0
    file_results: List[FileOutcome] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _finalized: bool = field(default=False, repr=False, compare=False)

    def record_outcome(self, outcome: FileOutcome) -> int:
        """Add one outcome. Returns how many files are now accounted for."""
        with self._lock:
            self._check_open()
            self.files_processed += 1
            self.original_size += outcome.original_size
            self.final_size += outcome.final_size
            self.file_results.append(outcome)
            return self.files_processed + len(self.errors)

    def record_error(self, filename: str, exc: BaseException | str) -> int:
        error = FileError(filename=filename, message=str(exc))
        with self._lock:
            self._check_open()
            self.errors.append(error)
            return self.files_processed + len(self.errors)

    def finalize(self) -> "RunStatistics":
        with self._lock:
            self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _check_open(self) -> None:
        if self._finalized:
            raise RuntimeError("RunStatistics is finalized; no more results can be recorded")

    # ----- Aggregates -----

    @property
    def files_attempted(self) -> int:
        return self.files_processed + len(self.errors)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.file_results if r.status == STATUS_SKIPPED)

    @property
    def compressed_count(self) -> int:
        return self.files_processed - self.skipped_count

    @property
    def saved_bytes(self) -> int:
        return max(0, self.original_size - self.final_size)

    @property
    def savings_percent(self) -> float:
        if self.original_size <= 0:
            return 0.0
        return (self.original_size - self.final_size) / self.original_size * 100.0

    @property
    def compression_ratio(self) -> float:
        """original:final, e.g. 2.0 means the output is half the size."""
        if self.original_size <= 0 or self.final_size <= 0:
            return 1.0
        return self.original_size / self.final_size
