"""
Canvas entities.

Design principles:
- Plain dataclasses, identities assigned by the store
- Entities are only mutated through CanvasManager operations
- Canvas owns its Blocks; everything else references by id
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class CanvasStatus(Enum):
    """Lifecycle of a canvas. OPEN -> COMPLETED only."""
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"


class PhotoStatus(Enum):
    """Review state of a submitted photo. Rejected photos are deleted."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class AssignmentPolicy(Enum):
    """How a joining participant's target color is chosen."""
    RANDOM = "random"
    SELECT = "select"
    RECOMMEND = "recommend"


@dataclass
class Canvas:
    """One collaborative mosaic session."""
    canvas_id: int
    room_code: str
    owner_id: int
    source_image_url: str
    block_count: int
    rows: int
    cols: int
    created_at: datetime
    status: CanvasStatus = CanvasStatus.OPEN
    is_public: bool = True
    password_hash: str | None = None

    # Participation window
    start_date: datetime | None = None
    end_date: datetime | None = None

    # Display metadata
    title: str | None = None
    description: str | None = None
    hashtags: list[str] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.status == CanvasStatus.OPEN

    @property
    def is_completed(self) -> bool:
        return self.status == CanvasStatus.COMPLETED

    def is_expired(self, now: datetime) -> bool:
        return self.end_date is not None and now > self.end_date

    def has_started(self, now: datetime) -> bool:
        return self.start_date is None or now >= self.start_date


@dataclass
class Block:
    """
    One grid cell.

    hex_color never changes after creation. A pending photo reserves the
    block (photo_id/filled_by set) without filling it.
    """
    block_id: int
    canvas_id: int
    order_index: int
    row: int
    col: int
    hex_color: str
    is_filled: bool = False
    filled_by: int | None = None
    photo_id: int | None = None


@dataclass
class Participation:
    """A user's membership and color assignment in a canvas."""
    participation_id: int
    canvas_id: int
    user_id: int
    block_color: str
    assigned_blocks: int  # Snapshot at join time, never reconciled
    policy: AssignmentPolicy
    joined_at: datetime


@dataclass
class Photo:
    """A submitted photo for one block."""
    photo_id: int
    canvas_id: int
    block_id: int
    user_id: int
    image_url: str
    submitted_at: datetime
    status: PhotoStatus = PhotoStatus.PENDING
    validation: dict[str, Any] | None = None

    @property
    def is_accepted(self) -> bool:
        return self.status == PhotoStatus.ACCEPTED


@dataclass
class FeedEntry:
    """A completed canvas promoted to the public feed."""
    entry_id: int
    canvas_id: int
    owner_id: int
    final_image_url: str
    created_at: datetime


@dataclass
class GalleryEntry:
    """A user's accepted photo, kept for their personal gallery."""
    entry_id: int
    user_id: int
    photo_id: int
    canvas_id: int
    block_color: str
    created_at: datetime


# =============================================================================
# Read views
# =============================================================================

@dataclass
class CanvasSummary:
    """Canvas with participation and fill progress."""
    canvas: Canvas
    participant_count: int
    total_blocks: int
    filled_blocks: int

    @property
    def progress(self) -> int:
        """Percent of blocks filled, rounded."""
        if not self.total_blocks:
            return 0
        return round(self.filled_blocks / self.total_blocks * 100)


@dataclass
class CanvasDetail:
    """Full canvas view for one viewer."""
    canvas: Canvas
    blocks: list[Block]
    participants: list[Participation]
    my_participation: Participation | None = None


@dataclass
class Page:
    """One page of a paginated listing."""
    items: list[Any]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0


@dataclass
class UserStats:
    """Activity counts for one user."""
    canvases_joined: int
    accepted_photos: int
    published_posts: int
