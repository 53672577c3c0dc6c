"""
Pytest fixtures for Mosaic tests.
"""

import io
import random
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest
from PIL import Image

from ..canvas import CanvasManager, FeedPublisher, InMemoryCanvasStore
from ..security import PasswordHasher
from ..vision import ColorValidator, ImagePixelizer, InMemoryBlobFetcher

RED = (255, 0, 0)
BLUE = (0, 0, 255)
GREEN = (0, 255, 0)


def png_bytes(pixels: np.ndarray) -> bytes:
    """Encode an (H, W, 3|4) uint8 array as PNG."""
    buf = io.BytesIO()
    Image.fromarray(pixels.astype(np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def solid_png(rgb, width: int = 64, height: int = 64) -> bytes:
    """PNG of a single color."""
    return png_bytes(np.full((height, width, 3), rgb, dtype=np.uint8))


def split_png(left_rgb, right_rgb, width: int = 40, height: int = 40) -> bytes:
    """PNG whose left half is one color and right half another."""
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, :width // 2] = left_rgb
    pixels[:, width // 2:] = right_rgb
    return png_bytes(pixels)


class FakeClock:
    """Controllable clock for window and ordering tests."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def fetcher() -> InMemoryBlobFetcher:
    """Fetcher preloaded with source images and candidate photos."""
    return InMemoryBlobFetcher({
        "source/red.png": solid_png(RED),
        "source/split.png": split_png(RED, BLUE),
        "photo/red.png": solid_png(RED),
        "photo/blue.png": solid_png(BLUE),
        "photo/green.png": solid_png(GREEN),
        "photo/corrupt.png": b"not an image",
    })


@pytest.fixture
def store() -> InMemoryCanvasStore:
    return InMemoryCanvasStore()


@pytest.fixture
def manager(store, fetcher, clock) -> CanvasManager:
    return CanvasManager(
        store=store,
        pixelizer=ImagePixelizer(fetcher),
        validator=ColorValidator(fetcher),
        hasher=PasswordHasher(iterations=1000),
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture
def feed(store, clock) -> FeedPublisher:
    return FeedPublisher(store, clock=clock)


@pytest.fixture
def red_canvas(manager):
    """A public 16-block canvas, every block #FF0000, owned by user 1."""
    return manager.create_canvas(owner_id=1, source_image_url="source/red.png")


@pytest.fixture
def split_canvas(manager):
    """A 16-block canvas: columns 0-1 red, columns 2-3 blue."""
    return manager.create_canvas(owner_id=1, source_image_url="source/split.png")
