from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import logging
import shutil

from .results import (
    STATUS_COMPRESSED,
    STATUS_ENLARGED,
    STATUS_NO_CHANGE,
    STATUS_SKIPPED,
)

logger = logging.getLogger(__name__)

ACCEPT = "accept"
DISCARD = "discard"
REVERT = "revert"

# An artifact bigger than original * MAX_GROWTH is never left on disk.
MAX_GROWTH = 1.5


@dataclass(frozen=True)
class Verdict:
    disposition: str
    status: str
    savings_percent: float
    reason: Optional[str] = None


def savings_percent(original: int, compressed: int) -> float:
    """Signed: negative when the result is larger than the input."""
    if original <= 0:
        return 0.0
    return (original - compressed) / original * 100.0


def classify(savings: float) -> str:
    if savings > 0:
        return STATUS_COMPRESSED
    if savings < 0:
        return STATUS_ENLARGED
    return STATUS_NO_CHANGE


def judge(original: int, compressed: int, min_savings: float) -> Verdict:
    """
    Decide what happens to a freshly encoded artifact.

    Pure function of the two sizes and the threshold; applies to every
    output format the same way.
    """
    savings = savings_percent(original, compressed)

    if savings < min_savings and compressed >= original:
        return Verdict(DISCARD, STATUS_SKIPPED, 0.0, reason="below_min_savings")

    if compressed > original * MAX_GROWTH:
        return Verdict(REVERT, STATUS_NO_CHANGE, 0.0, reason="reverted_to_original")

    return Verdict(ACCEPT, classify(savings), savings)


def apply_verdict(verdict: Verdict, artifact: Path, src_path: Path, copy_path: Path) -> Optional[Path]:
    """
    Carry out a verdict on disk. Returns the file left in the output dir, if any.

    Only the artifact path and (on revert) copy_path are touched.
    """
    if verdict.disposition == ACCEPT:
        return artifact

    artifact.unlink(missing_ok=True)

    if verdict.disposition == DISCARD:
        logger.debug("%s: discarded encoded output (%s)", src_path.name, verdict.reason)
        return None

    shutil.copyfile(src_path, copy_path)
    logger.debug("%s: output grew past %.0f%%, copied original instead", src_path.name, (MAX_GROWTH - 1) * 100)
    return copy_path
