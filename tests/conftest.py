from __future__ import annotations

import random
from pathlib import Path

import pytest
from PIL import Image


def noise_image(size: tuple[int, int], seed: int = 0) -> Image.Image:
    rng = random.Random(seed)
    w, h = size
    data = bytes(rng.getrandbits(8) for _ in range(w * h * 3))
    return Image.frombytes("RGB", size, data)


def gradient_image(size: tuple[int, int]) -> Image.Image:
    w, h = size
    im = Image.new("RGB", size)
    im.putdata([((x * 255) // max(1, w - 1), (y * 255) // max(1, h - 1), 128) for y in range(h) for x in range(w)])
    return im


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def src_dir(tmp_path: Path) -> Path:
    d = tmp_path / "src"
    d.mkdir()
    return d


@pytest.fixture
def noisy_jpeg(src_dir: Path) -> Path:
    """High quality JPEG of random noise: many bytes per pixel."""
    p = src_dir / "noisy.jpg"
    noise_image((200, 150)).save(p, "JPEG", quality=95)
    return p


@pytest.fixture
def flat_png(src_dir: Path) -> Path:
    """Solid-colour PNG already saved with the settings we re-encode with."""
    p = src_dir / "flat.png"
    Image.new("RGB", (64, 64), (40, 90, 200)).save(p, "PNG", compress_level=9, optimize=True)
    return p
