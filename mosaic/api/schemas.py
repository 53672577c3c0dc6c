"""
Pydantic Schemas for API - request/response models for OpenAPI.

These models define the contract between clients and the engine.
Error responses carry one of the ErrorCode values from mosaic.errors.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator

from ..errors import ErrorCode
from ..vision.pixelizer import GRID_DIMENSIONS


# =============================================================================
# Enums
# =============================================================================

class CanvasStatus(str, Enum):
    """Canvas lifecycle status."""
    OPEN = "OPEN"
    COMPLETED = "COMPLETED"


class PhotoStatus(str, Enum):
    """Photo review status."""
    PENDING = "pending"
    ACCEPTED = "accepted"


class AssignmentType(str, Enum):
    """Color assignment policy when joining."""
    RANDOM = "random"
    SELECT = "select"
    RECOMMEND = "recommend"


# =============================================================================
# Request Models
# =============================================================================

class CreateCanvasRequest(BaseModel):
    """Request to create a canvas from a source image."""
    source_image_url: str = Field(..., min_length=1, description="Reference to the source image")
    block_count: int = Field(16, description="16, 64 or 128")
    is_public: bool = True
    password: Optional[str] = Field(None, description="Required for private canvases")
    time_limit_minutes: Optional[int] = Field(
        None, gt=0, description="Participation window length from now"
    )
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)

    @field_validator("block_count")
    @classmethod
    def check_block_count(cls, value: int) -> int:
        if value not in GRID_DIMENSIONS:
            raise ValueError("Block count must be 16, 64, or 128")
        return value


class JoinCanvasRequest(BaseModel):
    """Request to join a canvas by room code."""
    room_code: str = Field(..., min_length=1)
    assignment_type: AssignmentType = AssignmentType.RANDOM
    selected_color: Optional[str] = Field(None, description="Hex color for 'select' mode")
    password: Optional[str] = None


class SubmitPhotoRequest(BaseModel):
    """Request to submit a photo for a block."""
    canvas_id: int
    block_id: int
    photo_url: str = Field(..., min_length=1)
    auto_validate: bool = Field(
        True, description="Validate color now; false routes the photo to owner review"
    )


class PublishRequest(BaseModel):
    """Request to publish a completed canvas to the feed."""
    canvas_id: int


# =============================================================================
# Shared Models
# =============================================================================

class BlockInfo(BaseModel):
    """One grid cell."""
    block_id: int
    order_index: int
    row: int
    col: int
    hex_color: str
    is_filled: bool
    filled_by: Optional[int] = None
    photo_id: Optional[int] = None

    model_config = {"from_attributes": True}


class ParticipationInfo(BaseModel):
    """A participant's color assignment."""
    canvas_id: int
    user_id: int
    block_color: str
    assigned_blocks: int
    assignment_type: AssignmentType
    joined_at: datetime


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ColorValidationInfo(BaseModel):
    """Validator diagnostics."""
    is_valid: bool
    dominant_color: str
    target_color: str
    similarity: float
    coverage: float
    reason: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class CanvasResponse(BaseModel):
    """Canvas metadata. The password hash is never exposed."""
    canvas_id: int
    room_code: str
    owner_id: int
    status: CanvasStatus
    is_public: bool
    block_count: int
    rows: int
    cols: int
    source_image_url: str
    created_at: datetime
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    title: Optional[str] = None
    description: Optional[str] = None
    hashtags: list[str] = Field(default_factory=list)
    api_version: str = "v1"


class CanvasDetailResponse(CanvasResponse):
    """Canvas with its grid and participants."""
    blocks: list[BlockInfo] = Field(default_factory=list)
    participants: list[ParticipationInfo] = Field(default_factory=list)
    my_participation: Optional[ParticipationInfo] = None


class CanvasSummaryInfo(BaseModel):
    """Canvas listing entry with progress."""
    canvas_id: int
    room_code: str
    owner_id: int
    status: CanvasStatus
    is_public: bool
    title: Optional[str] = None
    participant_count: int
    total_blocks: int
    filled_blocks: int
    progress: int = Field(..., ge=0, le=100, description="Percent of blocks filled")
    created_at: datetime
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class CanvasListResponse(BaseModel):
    canvases: list[CanvasSummaryInfo]
    pagination: Optional[PaginationInfo] = None


class ColorAvailabilityInfo(BaseModel):
    hex_color: str
    remaining_blocks: int


class AvailableColorsResponse(BaseModel):
    canvas_id: int
    colors: list[ColorAvailabilityInfo]


class JoinCanvasResponse(BaseModel):
    """Result of joining a canvas."""
    canvas_id: int
    room_code: str
    block_color: str
    assigned_blocks: int
    assignment_type: AssignmentType


class PhotoResponse(BaseModel):
    """A submitted photo."""
    photo_id: int
    canvas_id: int
    block_id: int
    user_id: int
    photo_url: str
    status: PhotoStatus
    submitted_at: datetime
    auto_accepted: bool = False
    color_validation: Optional[ColorValidationInfo] = None


class PhotoListResponse(BaseModel):
    photos: list[PhotoResponse]
    count: int


class RejectPhotoResponse(BaseModel):
    photo_id: int
    message: str = "Photo rejected and removed"


class GalleryEntryInfo(BaseModel):
    entry_id: int
    photo_id: int
    canvas_id: int
    block_color: str
    created_at: datetime

    model_config = {"from_attributes": True}


class GalleryResponse(BaseModel):
    entries: list[GalleryEntryInfo]
    count: int


class FeedEntryResponse(BaseModel):
    """A published canvas."""
    entry_id: int
    canvas_id: int
    owner_id: int
    final_image_url: str
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedListResponse(BaseModel):
    posts: list[FeedEntryResponse]
    pagination: Optional[PaginationInfo] = None


class DeleteFeedEntryResponse(BaseModel):
    entry_id: int
    message: str = "Feed post deleted successfully"


class UserStatsResponse(BaseModel):
    """Activity counts for the calling user."""
    user_id: int
    canvases_joined: int
    accepted_photos: int
    published_posts: int


class ErrorResponse(BaseModel):
    """Structured error response."""
    error: str
    error_code: ErrorCode
    details: Optional[dict[str, Any]] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
