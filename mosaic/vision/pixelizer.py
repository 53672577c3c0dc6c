"""
Image Pixelizer - turns a source image into an ordered color grid.

The pipeline:
1. Fetch the source bytes and decode once
2. Split the image into rows x cols equal blocks (integer division;
   trailing pixels past the last full block are dropped)
3. Resample each block to 10x10 and average every channel
4. Emit blocks in row-major order with gap-free order indices

Block counts are fixed by table: 16 -> 4x4, 64 -> 8x8, 128 -> 16x8.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

import numpy as np
from numpy.typing import NDArray
from PIL import Image

from .colors import rgb_to_hex
from .imaging import BlobFetcher, decode_image, resample_region
from ..errors import InvalidBlockCount, ImageDecodeError

logger = logging.getLogger(__name__)

# block count -> (rows, cols)
GRID_DIMENSIONS: dict[int, tuple[int, int]] = {
    16: (4, 4),
    64: (8, 8),
    128: (16, 8),
}

ANALYSIS_SIZE = (10, 10)


@dataclass(frozen=True)
class ColorBlock:
    """One grid cell's representative color."""
    order_index: int
    hex_color: str
    row: int
    col: int

    @property
    def position(self) -> tuple[int, int]:
        return (self.row, self.col)


def grid_dimensions(block_count: int) -> tuple[int, int]:
    """Return (rows, cols) for a supported block count."""
    try:
        return GRID_DIMENSIONS[block_count]
    except (KeyError, TypeError):
        raise InvalidBlockCount(
            f"Invalid block count {block_count!r}. Use 16, 64, or 128",
            details={"allowed": sorted(GRID_DIMENSIONS)},
        ) from None


def average_color(pixels: NDArray[np.uint8]) -> tuple[int, int, int]:
    """
    Mean of each RGB channel, rounded half up to the nearest integer.
    """
    flat = pixels.reshape(-1, pixels.shape[-1])[:, :3].astype(np.float64)
    means = np.floor(flat.mean(axis=0) + 0.5).astype(int)
    return int(means[0]), int(means[1]), int(means[2])


class ImagePixelizer:
    """
    Converts images into deterministic color grids.

    Usage:
        pixelizer = ImagePixelizer(fetcher)
        blocks = pixelizer.pixelize("https://.../source.jpg", block_count=64)
    """

    def __init__(self, fetcher: BlobFetcher):
        self.fetcher = fetcher

    def pixelize(self, image_url: str, block_count: int = 16) -> list[ColorBlock]:
        """
        Fetch an image and pixelize it.

        Raises:
            InvalidBlockCount: block_count is not 16, 64 or 128
            ImageFetchError: Source could not be fetched
            ImageDecodeError: Source bytes are not a usable image
        """
        rows, cols = grid_dimensions(block_count)
        data = self.fetcher.fetch(image_url)
        logger.info("Pixelizing %s into %d blocks (%dx%d)", image_url, block_count, rows, cols)
        return self.pixelize_bytes(data, block_count)

    def pixelize_bytes(self, data: bytes, block_count: int = 16) -> list[ColorBlock]:
        """Pixelize already-fetched image bytes."""
        rows, cols = grid_dimensions(block_count)
        img = decode_image(data)
        return pixelize_image(img, rows, cols)


def pixelize_image(img: Image.Image, rows: int, cols: int) -> list[ColorBlock]:
    """Split a decoded image into a rows x cols grid of average colors."""
    width, height = img.size
    block_width = width // cols
    block_height = height // rows
    if block_width == 0 or block_height == 0:
        raise ImageDecodeError(
            f"Image {width}x{height} is too small for a {rows}x{cols} grid"
        )

    blocks: list[ColorBlock] = []
    for row in range(rows):
        for col in range(cols):
            left = col * block_width
            top = row * block_height
            pixels = resample_region(
                img,
                (left, top, left + block_width, top + block_height),
                ANALYSIS_SIZE,
            )
            blocks.append(
                ColorBlock(
                    order_index=len(blocks),
                    hex_color=rgb_to_hex(*average_color(pixels)),
                    row=row,
                    col=col,
                )
            )

    logger.debug("Extracted %d color blocks from %dx%d image", len(blocks), width, height)
    return blocks
