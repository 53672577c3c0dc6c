"""
Error taxonomy for the mosaic engine.

Every business-rule failure is raised as a MosaicError subclass that
carries a structured error code and an HTTP status hint. The API layer
turns these into ErrorResponse payloads; nothing in the core swallows them.

Error Codes:
- VALIDATION_ERROR: Malformed or missing input
- NOT_FOUND: Canvas, block, photo or feed entry does not exist
- UNAUTHORIZED: Wrong or missing canvas password
- FORBIDDEN: Caller may not perform an owner-only action
- CONFLICT: Already joined, filled, published, completed
- EXPIRED: Participation window has passed
- CLOSED: Canvas is not open for participation
- COLOR_MISMATCH: Submitted photo failed color validation
- IMAGE_FETCH_ERROR / IMAGE_DECODE_ERROR: Upstream image failures
- INCOMPLETE_BLOCKS: Completion preconditions not met
"""

from __future__ import annotations
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .vision.validator import ColorValidation


class ErrorCode(str, Enum):
    """Structured error codes."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_BLOCK_COUNT = "INVALID_BLOCK_COUNT"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    ALREADY_JOINED = "ALREADY_JOINED"
    ALREADY_FILLED = "ALREADY_FILLED"
    ALREADY_PUBLISHED = "ALREADY_PUBLISHED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    NO_CAPACITY = "NO_CAPACITY"
    COLOR_UNAVAILABLE = "COLOR_UNAVAILABLE"
    INVALID_STATE = "INVALID_STATE"
    EXPIRED = "EXPIRED"
    CLOSED = "CLOSED"
    COLOR_MISMATCH = "COLOR_MISMATCH"
    IMAGE_FETCH_ERROR = "IMAGE_FETCH_ERROR"
    IMAGE_DECODE_ERROR = "IMAGE_DECODE_ERROR"
    INCOMPLETE_BLOCKS = "INCOMPLETE_BLOCKS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class MosaicError(Exception):
    """Base class for all typed engine failures."""
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "error_code": self.code.value,
            "details": self.details or None,
        }


class ValidationError(MosaicError):
    code = ErrorCode.VALIDATION_ERROR
    status_code = 400


class InvalidBlockCount(ValidationError):
    code = ErrorCode.INVALID_BLOCK_COUNT


class NotFoundError(MosaicError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class UnauthorizedError(MosaicError):
    code = ErrorCode.UNAUTHORIZED
    status_code = 401


class ForbiddenError(MosaicError):
    code = ErrorCode.FORBIDDEN
    status_code = 403


class ConflictError(MosaicError):
    code = ErrorCode.CONFLICT
    status_code = 409


class AlreadyJoined(ConflictError):
    code = ErrorCode.ALREADY_JOINED


class AlreadyFilled(ConflictError):
    code = ErrorCode.ALREADY_FILLED


class AlreadyPublished(ConflictError):
    code = ErrorCode.ALREADY_PUBLISHED


class AlreadyCompleted(ConflictError):
    code = ErrorCode.ALREADY_COMPLETED


class NoCapacity(ConflictError):
    code = ErrorCode.NO_CAPACITY


class ColorUnavailable(ConflictError):
    code = ErrorCode.COLOR_UNAVAILABLE


class InvalidState(ConflictError):
    code = ErrorCode.INVALID_STATE


class ExpiredError(MosaicError):
    code = ErrorCode.EXPIRED
    status_code = 410


class ClosedError(MosaicError):
    code = ErrorCode.CLOSED
    status_code = 409


class ColorMismatch(MosaicError):
    """Photo rejected by the color validator."""
    code = ErrorCode.COLOR_MISMATCH
    status_code = 422

    def __init__(self, validation: ColorValidation):
        super().__init__(
            f"Color validation failed: {validation.reason}",
            details={
                "dominant_color": validation.dominant_color,
                "target_color": validation.target_color,
                "similarity": round(validation.similarity, 2),
                "coverage": round(validation.coverage, 2),
            },
        )
        self.validation = validation


class ImageFetchError(MosaicError):
    code = ErrorCode.IMAGE_FETCH_ERROR
    status_code = 502


class ImageDecodeError(MosaicError):
    code = ErrorCode.IMAGE_DECODE_ERROR
    status_code = 422


class IncompleteBlocks(MosaicError):
    code = ErrorCode.INCOMPLETE_BLOCKS
    status_code = 409
