from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Optional

from .errors import ConfigurationError


# Output formats the encoder can target.
OutputFormat = Literal["jpeg", "png", "webp"]

OUTPUT_FORMATS: tuple[str, ...] = ("jpeg", "png", "webp")

FORMAT_TO_EXT = {
    "jpeg": ".jpg",
    "png": ".png",
    "webp": ".webp",
}


@dataclass(frozen=True)
class QualityEstimate:
    """
    Tuning for the JPEG "already compressed enough?" guess.

    bands:
        (bytes_per_pixel_above, estimated_quality) pairs, checked in order.
        The first band whose threshold is exceeded wins.
    floor:
        Quality assumed when no band matches.
    margin:
        Target quality must be more than this many points below the
        estimate before a JPEG is re-encoded to JPEG.

    This is a rough guess from file size and pixel count only. It never
    looks at quantization tables, so it can skip files that would have
    shrunk and re-encode files that won't.
    """

    bands: tuple[tuple[float, int], ...] = ((1.5, 85), (1.0, 75), (0.5, 65))
    floor: int = 50
    margin: int = 10
    enabled: bool = True


@dataclass(frozen=True)
class CompressionRequest:
    """
    Everything a worker needs to process one file.

    Built once per run and shared read-only by all workers.
    """

    output_dir: Path
    input_path: Optional[Path] = None
    output_format: OutputFormat = "jpeg"
    quality: int = 65

    # ----- Resize -----
    # Both set: scale to exactly max_width x max_height.
    # One set: keep aspect ratio, never upscale.
    max_width: Optional[int] = None
    max_height: Optional[int] = None

    # Keep the output only if it saves at least this many percent
    # (or is not larger than the source).
    min_savings: float = 5.0

    estimate: QualityEstimate = field(default_factory=QualityEstimate)

    # Used when flattening transparent images for formats without alpha.
    background: tuple[int, int, int] = (255, 255, 255)

    @property
    def extension(self) -> str:
        return FORMAT_TO_EXT[self.output_format]


def validate_request(req: CompressionRequest) -> CompressionRequest:
    """Reject a request before any file is touched. Returns it unchanged."""
    if isinstance(req.quality, bool) or not isinstance(req.quality, int):
        raise ConfigurationError(f"Quality must be an integer, got {req.quality!r}")
    if not 1 <= req.quality <= 100:
        raise ConfigurationError("Quality must be between 1 and 100")

    if req.output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(f"Unknown output format: {req.output_format}")

    for name in ("max_width", "max_height"):
        value = getattr(req, name)
        if value is not None and value < 1:
            raise ConfigurationError(f"{name} must be a positive number of pixels")

    if req.estimate.margin < 0:
        raise ConfigurationError("Skip margin cannot be negative")

    return req
