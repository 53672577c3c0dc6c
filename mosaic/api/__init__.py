"""
API Module - REST interface to the mosaic engine.

Clients:
1. Create canvases from uploaded source images
2. Join canvases by room code
3. Submit photos for their assigned color
4. Review, complete and publish canvases they own
5. Browse the public feed
"""

from .schemas import (
    # Requests
    CreateCanvasRequest,
    JoinCanvasRequest,
    SubmitPhotoRequest,
    PublishRequest,
    # Responses
    CanvasResponse,
    CanvasDetailResponse,
    CanvasListResponse,
    JoinCanvasResponse,
    PhotoResponse,
    FeedEntryResponse,
    ErrorResponse,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateCanvasRequest",
    "JoinCanvasRequest",
    "SubmitPhotoRequest",
    "PublishRequest",
    # Responses
    "CanvasResponse",
    "CanvasDetailResponse",
    "CanvasListResponse",
    "JoinCanvasResponse",
    "PhotoResponse",
    "FeedEntryResponse",
    "ErrorResponse",
    # Service
    "APIService",
    "create_app",
]
