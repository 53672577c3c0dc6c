"""
Imaging - blob fetch and image decode/resample helpers.

Blob fetch is a collaborator: the engine only needs "give me the bytes
behind this reference". Implementations:
- HttpBlobFetcher: Fetches http(s) URLs with requests
- InMemoryBlobFetcher: Serves registered bytes (tests, CLI, local files)

Decoding and resampling use Pillow; channel arithmetic uses numpy.
Only the first three channels of each pixel are ever read.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
import io
import logging

import numpy as np
from numpy.typing import NDArray
from PIL import Image, UnidentifiedImageError
import requests

from ..config import FETCH_TIMEOUT
from ..errors import ImageFetchError, ImageDecodeError

logger = logging.getLogger(__name__)

# Area-averaging filter; uniform regions resample to their exact color.
RESAMPLE = Image.Resampling.BOX


class BlobFetcher(ABC):
    """
    Abstract source of raw image bytes.

    Implementations raise ImageFetchError when the reference cannot
    be resolved.
    """

    @abstractmethod
    def fetch(self, reference: str) -> bytes:
        """Return the raw bytes behind an image reference."""
        pass


class HttpBlobFetcher(BlobFetcher):
    """Fetches image references over HTTP(S)."""

    def __init__(self, timeout: float = FETCH_TIMEOUT, session: requests.Session | None = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, reference: str) -> bytes:
        try:
            response = self.session.get(reference, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Image fetch failed for %s: %s", reference, e)
            raise ImageFetchError(f"Failed to fetch image: {e}") from e

        if not response.content:
            raise ImageFetchError(f"No image data received from {reference}")
        return response.content


class InMemoryBlobFetcher(BlobFetcher):
    """
    Serves bytes registered under a reference.

    Falls back to reading a local path when the reference is not
    registered and allow_files is set.
    """

    def __init__(self, blobs: dict[str, bytes] | None = None, allow_files: bool = False):
        self.blobs = dict(blobs or {})
        self.allow_files = allow_files

    def put(self, reference: str, data: bytes) -> str:
        self.blobs[reference] = data
        return reference

    def fetch(self, reference: str) -> bytes:
        if reference in self.blobs:
            return self.blobs[reference]
        if self.allow_files:
            path = Path(reference)
            try:
                return path.read_bytes()
            except OSError as e:
                raise ImageFetchError(f"Failed to read image file: {e}") from e
        raise ImageFetchError(f"Unknown image reference: {reference}")


def decode_image(data: bytes) -> Image.Image:
    """
    Decode raw bytes into an RGB image.

    Alpha and any extra channels are dropped.
    """
    if not data:
        raise ImageDecodeError("Empty image data")
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Failed to decode image: {e}") from e

    if img.mode != "RGB":
        img = img.convert("RGB")
    return img


def resample_region(
    img: Image.Image,
    box: tuple[int, int, int, int],
    size: tuple[int, int],
) -> NDArray[np.uint8]:
    """
    Resample a rectangular region to a fixed size.

    Args:
        img: Decoded RGB image
        box: (left, top, right, bottom) in source pixels
        size: (width, height) of the output

    Returns:
        Array of shape (height, width, 3)
    """
    region = img.resize(size, RESAMPLE, box=box)
    return np.asarray(region, dtype=np.uint8)[:, :, :3]


def fit_inside(img: Image.Image, max_width: int, max_height: int) -> NDArray[np.uint8]:
    """
    Resample the whole image to fit inside a bounding box, keeping aspect.

    Small images are scaled up so the analysis resolution is constant.
    """
    width, height = img.size
    scale = min(max_width / width, max_height / height)
    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
    return resample_region(img, (0, 0, width, height), new_size)
