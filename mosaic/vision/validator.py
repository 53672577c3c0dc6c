"""
Color Validator - judges whether a photo matches a target color.

A photo is analyzed at a bounded resolution (fit inside 100x100). The
most frequent exact color is the dominant color; coverage is the share
of analyzed pixels that carry it. A photo is valid when the dominant
color is similar enough to the target AND covers enough of the frame.

The validator is a pure query: it never touches canvas state.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
import logging

import numpy as np
from numpy.typing import NDArray

from .colors import RGB, hex_to_rgb, rgb_to_hex, similarity
from .imaging import BlobFetcher, decode_image, fit_inside
from ..errors import ImageDecodeError

logger = logging.getLogger(__name__)

ANALYSIS_SIZE = (100, 100)
MIN_SIMILARITY = 90.0
MIN_COVERAGE = 80.0


@dataclass(frozen=True)
class DominantColor:
    """Most frequent color of an analyzed image."""
    hex: str
    rgb: RGB
    coverage: float  # Percent of analyzed pixels, 0-100
    pixel_count: int
    total_pixels: int


@dataclass(frozen=True)
class ColorValidation:
    """Outcome of validating a photo against a target color."""
    is_valid: bool
    dominant_color: str
    target_color: str
    similarity: float
    coverage: float
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "dominant_color": self.dominant_color,
            "target_color": self.target_color,
            "similarity": self.similarity,
            "coverage": self.coverage,
            "reason": self.reason,
        }


def dominant_color(pixels: NDArray[np.uint8]) -> DominantColor:
    """
    Find the most frequent exact color in a pixel array.

    Ties go to the color encountered first in row-major order.
    """
    flat = pixels.reshape(-1, pixels.shape[-1])[:, :3]
    total = len(flat)
    if total == 0:
        raise ImageDecodeError("Cannot analyze an empty image")

    # Counter preserves first-insertion order, and most_common() is stable
    counts = Counter(rgb_to_hex(int(r), int(g), int(b)) for r, g, b in flat)
    hex_color, count = counts.most_common(1)[0]
    return DominantColor(
        hex=hex_color,
        rgb=hex_to_rgb(hex_color),
        coverage=count / total * 100,
        pixel_count=count,
        total_pixels=total,
    )


class ColorValidator:
    """
    Validates candidate photos against block colors.

    Usage:
        validator = ColorValidator(fetcher)
        result = validator.validate(photo_url, "#FF0000")
        if not result.is_valid:
            print(result.reason)
    """

    def __init__(
        self,
        fetcher: BlobFetcher,
        min_similarity: float = MIN_SIMILARITY,
        min_coverage: float = MIN_COVERAGE,
    ):
        self.fetcher = fetcher
        self.min_similarity = min_similarity
        self.min_coverage = min_coverage

    def validate(self, image_url: str, target_hex: str) -> ColorValidation:
        """
        Fetch a photo and validate it.

        Raises:
            ImageFetchError: Photo could not be fetched
            ImageDecodeError: Photo bytes are not a usable image
        """
        data = self.fetcher.fetch(image_url)
        return self.validate_bytes(data, target_hex)

    def validate_bytes(self, data: bytes, target_hex: str) -> ColorValidation:
        img = decode_image(data)
        pixels = fit_inside(img, *ANALYSIS_SIZE)
        return self.judge(dominant_color(pixels), target_hex)

    def judge(self, dominant: DominantColor, target_hex: str) -> ColorValidation:
        """Apply the similarity and coverage thresholds."""
        target = hex_to_rgb(target_hex)
        score = similarity(dominant.rgb, target)

        is_similar = score >= self.min_similarity
        is_enough = dominant.coverage >= self.min_coverage

        reason = None
        if not is_similar:
            reason = (
                f"Color mismatch: {score:.1f}% similar "
                f"(need {self.min_similarity:g}%+)"
            )
        elif not is_enough:
            reason = (
                f"Not enough coverage: {dominant.coverage:.1f}% "
                f"(need {self.min_coverage:g}%+)"
            )

        logger.info(
            "Color validation target=%s dominant=%s similarity=%.2f coverage=%.2f valid=%s",
            target.hex, dominant.hex, score, dominant.coverage, is_similar and is_enough,
        )

        return ColorValidation(
            is_valid=is_similar and is_enough,
            dominant_color=dominant.hex,
            target_color=target.hex,
            similarity=score,
            coverage=dominant.coverage,
            reason=reason,
        )
