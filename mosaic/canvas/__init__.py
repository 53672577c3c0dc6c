"""
Canvas Module - collaborative mosaic state.

A canvas represents one mosaic session:
- Created from a source image, pixelized into a color grid
- Joined by participants via a 6-character room code
- Filled block by block with color-matched photos
- Completed by its owner and optionally published to the feed

All entities are created and mutated through CanvasManager and
FeedPublisher; the store is the only shared state.
"""

from .models import (
    Canvas,
    Block,
    Participation,
    Photo,
    FeedEntry,
    GalleryEntry,
    CanvasStatus,
    PhotoStatus,
    AssignmentPolicy,
    CanvasSummary,
    CanvasDetail,
    Page,
    UserStats,
)
from .store import CanvasStore, InMemoryCanvasStore, UniqueViolation
from .manager import CanvasManager, Submission
from .feed import FeedPublisher

__all__ = [
    "Canvas",
    "Block",
    "Participation",
    "Photo",
    "FeedEntry",
    "GalleryEntry",
    "CanvasStatus",
    "PhotoStatus",
    "AssignmentPolicy",
    "CanvasSummary",
    "CanvasDetail",
    "Page",
    "UserStats",
    "CanvasStore",
    "InMemoryCanvasStore",
    "UniqueViolation",
    "CanvasManager",
    "Submission",
    "FeedPublisher",
]
