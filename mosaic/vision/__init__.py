"""
Vision Layer - image pixelization and color validation.

Architecture:
    Source image -> ImagePixelizer -> ordered ColorBlocks -> Canvas grid
    Photo -> ColorValidator -> ColorValidation -> fill / reject

Both engines fetch bytes through a BlobFetcher and never touch
canvas state.
"""

from .colors import RGB, hex_to_rgb, parse_hex, rgb_to_hex, normalize_hex, similarity
from .imaging import BlobFetcher, HttpBlobFetcher, InMemoryBlobFetcher
from .pixelizer import ImagePixelizer, ColorBlock, GRID_DIMENSIONS, grid_dimensions
from .validator import ColorValidator, ColorValidation, DominantColor, dominant_color

__all__ = [
    "RGB",
    "hex_to_rgb",
    "parse_hex",
    "rgb_to_hex",
    "normalize_hex",
    "similarity",
    "BlobFetcher",
    "HttpBlobFetcher",
    "InMemoryBlobFetcher",
    "ImagePixelizer",
    "ColorBlock",
    "GRID_DIMENSIONS",
    "grid_dimensions",
    "ColorValidator",
    "ColorValidation",
    "DominantColor",
    "dominant_color",
]
