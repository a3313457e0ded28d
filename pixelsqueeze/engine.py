from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional
import logging

from PIL import Image

from .guard import ACCEPT, apply_verdict, judge
from .results import STATUS_SKIPPED, FileOutcome
from .settings import CompressionRequest, QualityEstimate

logger = logging.getLogger(__name__)


SUPPORTED_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tiff", ".gif"}

JPEG_EXTS = {".jpg", ".jpeg"}

# Modes Pillow can write to PNG as-is; anything else (CMYK, YCbCr, F...) is
# converted to RGBA first.
PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


@dataclass(frozen=True)
class EncodePlan:
    format: str  # Pillow format name
    mode: Optional[str]  # target mode, None = keep source mode
    save_kwargs: dict = field(default_factory=dict)


def is_image_file(path: Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTS


# ----- Resize -----

def compute_resize(size: tuple[int, int], max_width: Optional[int], max_height: Optional[int]) -> Optional[tuple[int, int]]:
    """
    Return the new (width, height), or None when no resize is needed.

    - both bounds: exactly (max_width, max_height), aspect ratio is the
      caller's problem
    - one bound: the other axis follows the aspect ratio, and only images
      larger than the bound shrink
    """
    w, h = size

    if max_width is not None and max_height is not None:
        if (max_width, max_height) == (w, h):
            return None
        return max_width, max_height

    if max_width is not None:
        if w <= max_width:
            return None
        return max_width, max(1, int(max_width * h / w))

    if max_height is not None:
        if h <= max_height:
            return None
        return max(1, int(max_height * w / h)), max_height

    return None


def _apply_resize(im: Image.Image, req: CompressionRequest) -> Image.Image:
    target = compute_resize(im.size, req.max_width, req.max_height)
    if target is None:
        return im
    logger.debug("Resizing %sx%s -> %sx%s", im.width, im.height, *target)
    # Pillow falls back to NEAREST for "1" and "P", whatever filter is asked for.
    if im.mode == "1":
        im = im.convert("L")
    elif im.mode in ("P", "PA"):
        im = im.convert("RGBA" if _has_alpha(im) else "RGB")
    return im.resize(target, Image.Resampling.LANCZOS)


# ----- Pre-flight skip -----

def estimate_jpeg_quality(file_size: int, width: int, height: int, est: QualityEstimate) -> int:
    """
    Guess a JPEG's encoding quality from its bytes-per-pixel ratio.

    Approximate: well-compressed flat images and noisy high-quality
    photos both fool it.
    """
    pixels = width * height
    if pixels <= 0:
        return est.floor
    bpp = file_size / pixels
    for threshold, quality in est.bands:
        if bpp > threshold:
            return quality
    return est.floor


def should_reencode_jpeg(file_size: int, width: int, height: int, target_quality: int, est: QualityEstimate) -> bool:
    estimated = estimate_jpeg_quality(file_size, width, height, est)
    return target_quality < estimated - est.margin


def _preflight_skip(src_path: Path, src_bytes: int, req: CompressionRequest) -> bool:
    if not req.estimate.enabled:
        return False
    if req.output_format != "jpeg" or src_path.suffix.lower() not in JPEG_EXTS:
        return False

    # Header only, no pixel decode.
    with Image.open(src_path) as im:
        width, height = im.size

    return not should_reencode_jpeg(src_bytes, width, height, req.quality, req.estimate)


# ----- Encode plans -----

def _plan_jpeg(quality: int, source_ext: str) -> EncodePlan:
    return EncodePlan("JPEG", "RGB", {"quality": quality, "optimize": True})


def _plan_png(quality: int, source_ext: str) -> EncodePlan:
    # JPEG sources tend to balloon as PNG, so drop to plain RGB.
    mode = "RGB" if source_ext in JPEG_EXTS else None
    # Pillow picks the row filter adaptively for non-palette images.
    return EncodePlan("PNG", mode, {"compress_level": 9, "optimize": True})


def _plan_webp(quality: int, source_ext: str) -> EncodePlan:
    if quality >= 100:
        return EncodePlan("WEBP", "RGB", {"lossless": True})
    return EncodePlan("WEBP", "RGB", {"lossless": False, "quality": float(quality)})


_PLANNERS: dict[str, Callable[[int, str], EncodePlan]] = {
    "jpeg": _plan_jpeg,
    "png": _plan_png,
    "webp": _plan_webp,
}


def plan_encode(output_format: str, quality: int, source_ext: str) -> EncodePlan:
    try:
        planner = _PLANNERS[output_format]
    except KeyError:
        raise ValueError(f"Unsupported output format: {output_format}") from None
    return planner(quality, source_ext.lower())


def _prepare(im: Image.Image, plan: EncodePlan, background: tuple[int, int, int]) -> Image.Image:
    if plan.mode == "RGB":
        if _has_alpha(im):
            return _flatten_alpha(im, background)
        return im if im.mode == "RGB" else im.convert("RGB")
    if plan.format == "PNG" and im.mode not in PNG_MODES:
        return im.convert("RGBA")
    return im


def _flatten_alpha(im: Image.Image, background_rgb: tuple[int, int, int]) -> Image.Image:
    rgba = im.convert("RGBA")
    bg = Image.new("RGBA", rgba.size, background_rgb + (255,))
    comp = Image.alpha_composite(bg, rgba)
    return comp.convert("RGB")


def _has_alpha(im: Image.Image) -> bool:
    if im.mode in ("RGBA", "LA", "PA"):
        return True
    if im.mode == "P" and "transparency" in im.info:
        return True
    return False


def build_output_path(src_path: Path, req: CompressionRequest, stem: Optional[str] = None) -> Path:
    return req.output_dir / f"{stem or src_path.stem}{req.extension}"


def encode_image(src_path: Path, out_path: Path, req: CompressionRequest) -> None:
    """Decode src_path, resize, and write it to out_path per the request."""
    plan = plan_encode(req.output_format, req.quality, src_path.suffix)

    with Image.open(src_path) as im:
        im.load()
        im = _apply_resize(im, req)
        im = _prepare(im, plan, req.background)
        # Metadata (EXIF, ICC, text chunks) is not passed on.
        im.save(out_path, format=plan.format, **plan.save_kwargs)


# ----- Per-file pipeline -----

def process_image(src_path: Path, req: CompressionRequest, stem: Optional[str] = None) -> FileOutcome:
    """
    Run one file through skip check, encode and savings guard.

    stem:
        Output file stem, defaults to the source's. The batch layer passes
        a unique one when several inputs share a name.

    Codec and filesystem errors propagate; the batch layer records them.
    """
    src_path = Path(src_path)
    stem = stem or src_path.stem

    # Both the encoded output and a reverted copy would land on the source.
    if src_path.resolve().parent == req.output_dir.resolve():
        raise ValueError(f"Source is inside the output directory: {src_path}")

    src_bytes = src_path.stat().st_size

    if _preflight_skip(src_path, src_bytes, req):
        logger.debug("%s: already at or below target quality, skipping", src_path.name)
        return FileOutcome(
            filename=src_path.name,
            src_path=src_path,
            out_path=None,
            original_size=src_bytes,
            final_size=src_bytes,
            status=STATUS_SKIPPED,
            savings_percent=0.0,
            reason="already_optimized",
        )

    out_path = build_output_path(src_path, req, stem)
    encode_image(src_path, out_path, req)
    out_bytes = out_path.stat().st_size

    verdict = judge(src_bytes, out_bytes, req.min_savings)
    copy_path = req.output_dir / f"{stem}{src_path.suffix}"
    kept = apply_verdict(verdict, out_path, src_path, copy_path)
    final_bytes = out_bytes if verdict.disposition == ACCEPT else src_bytes

    logger.debug("%s: %d -> %d bytes (%s)", src_path.name, src_bytes, final_bytes, verdict.status)

    return FileOutcome(
        filename=src_path.name,
        src_path=src_path,
        out_path=kept,
        original_size=src_bytes,
        final_size=final_bytes,
        status=verdict.status,
        savings_percent=verdict.savings_percent,
        reason=verdict.reason,
    )
