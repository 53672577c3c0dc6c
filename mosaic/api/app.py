"""
FastAPI Application - REST API for the mosaic engine.

Endpoints:
    POST   /api/v1/canvases                       Create canvas from a source image
    GET    /api/v1/canvases/public                List public open canvases
    GET    /api/v1/canvases/mine                  List canvases I own or joined
    POST   /api/v1/canvases/join                  Join by room code
    GET    /api/v1/canvases/{id}                  Canvas detail with grid
    GET    /api/v1/canvases/{id}/colors           Unfilled colors and counts
    POST   /api/v1/canvases/{id}/complete         Complete a fully filled canvas
    GET    /api/v1/canvases/{id}/photos/pending   Photos awaiting review (owner)
    POST   /api/v1/photos                         Submit a photo for a block
    GET    /api/v1/photos/mine                    My submitted photos
    POST   /api/v1/photos/{id}/accept             Accept a pending photo (owner)
    POST   /api/v1/photos/{id}/reject             Reject a pending photo (owner)
    GET    /api/v1/gallery                        My accepted photos
    POST   /api/v1/feed                           Publish a completed canvas
    GET    /api/v1/feed                           Feed, newest first
    GET    /api/v1/feed/mine                      My feed posts
    GET    /api/v1/feed/{id}                      Feed post detail
    DELETE /api/v1/feed/{id}                      Delete my feed post
    GET    /api/v1/users/me/stats                 My activity counts
    GET    /health                                Health check

The caller's identity arrives in the X-User-Id header; issuing and
verifying credentials happens upstream of this service.

Engine calls run in a worker thread, never on the event loop. Photo submission
awaits validation first and only then commits, so a request abandoned
during validation leaves no trace.
"""

from typing import Annotated, Optional
import logging

from .. import __version__
from ..config import ALLOWED_ORIGINS, MOSAIC_ENV, configure_logging
from ..errors import MosaicError, UnauthorizedError

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import Depends, FastAPI, Header, Query, Request
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
        from starlette.concurrency import run_in_threadpool
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import APIService
    from .schemas import (
        # Request models
        CreateCanvasRequest,
        JoinCanvasRequest,
        SubmitPhotoRequest,
        PublishRequest,
        # Response models
        CanvasResponse,
        CanvasDetailResponse,
        CanvasListResponse,
        AvailableColorsResponse,
        JoinCanvasResponse,
        PhotoResponse,
        PhotoListResponse,
        RejectPhotoResponse,
        GalleryResponse,
        FeedEntryResponse,
        FeedListResponse,
        DeleteFeedEntryResponse,
        UserStatsResponse,
        ErrorResponse,
        HealthResponse,
    )

    configure_logging()
    logger.info("Creating Mosaic API (env=%s)", MOSAIC_ENV)

    app = FastAPI(
        title="Mosaic API",
        description="""
Collaborative photo mosaic - fill a pixelized grid with color-matched photos.

## Flow

1. `POST /canvases` pixelizes a source image into 16, 64 or 128 blocks
2. Participants `POST /canvases/join` with the room code and get a color
3. Participants `POST /photos`; matching photos fill their block at once
4. The owner `POST /canvases/{id}/complete`s the canvas, then publishes it

## Error Codes

| Code | Description |
|------|-------------|
| `VALIDATION_ERROR` | Malformed or missing input |
| `NOT_FOUND` | Canvas, block, photo or post does not exist |
| `UNAUTHORIZED` | Missing identity or wrong canvas password |
| `FORBIDDEN` | Owner-only action |
| `ALREADY_JOINED` / `ALREADY_FILLED` / `ALREADY_PUBLISHED` | Conflicts |
| `EXPIRED` / `CLOSED` | Canvas not accepting participants |
| `COLOR_MISMATCH` | Photo color did not match the block |
| `INCOMPLETE_BLOCKS` | Not every block is filled |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()
    app.state.service = api_service

    error_responses = {
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    }

    # =========================================================================
    # Error handling and identity
    # =========================================================================

    @app.exception_handler(MosaicError)
    async def handle_mosaic_error(request: Request, exc: MosaicError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        else:
            logger.info("%s %s -> %s", request.method, request.url.path, exc.code.value)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=exc.message,
                error_code=exc.code,
                details=exc.details or None,
            ).model_dump(mode="json"),
        )

    def current_user(
        x_user_id: Annotated[Optional[int], Header(description="Authenticated user id")] = None,
    ) -> int:
        if x_user_id is None:
            raise UnauthorizedError("Unauthorized")
        return x_user_id

    def optional_user(
        x_user_id: Annotated[Optional[int], Header()] = None,
    ) -> Optional[int]:
        return x_user_id

    UserId = Annotated[int, Depends(current_user)]

    # =========================================================================
    # Canvas Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/canvases",
        response_model=CanvasResponse,
        status_code=201,
        responses=error_responses,
        tags=["Canvases"],
        summary="Create a canvas from a source image",
    )
    async def create_canvas(body: CreateCanvasRequest, user_id: UserId) -> CanvasResponse:
        """Pixelize the source image and open a new canvas with a fresh room code."""
        return await run_in_threadpool(api_service.create_canvas, user_id, body)

    @app.get(
        "/api/v1/canvases/public",
        response_model=CanvasListResponse,
        tags=["Canvases"],
        summary="List public open canvases",
    )
    def list_public_canvases(
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int, Query(ge=1, le=100)] = 20,
    ) -> CanvasListResponse:
        return api_service.list_public_canvases(page, limit)

    @app.get(
        "/api/v1/canvases/mine",
        response_model=CanvasListResponse,
        tags=["Canvases"],
        summary="List canvases I own or joined",
    )
    def list_my_canvases(user_id: UserId) -> CanvasListResponse:
        return api_service.list_my_canvases(user_id)

    @app.post(
        "/api/v1/canvases/join",
        response_model=JoinCanvasResponse,
        responses=error_responses,
        tags=["Canvases"],
        summary="Join a canvas by room code",
    )
    async def join_canvas(body: JoinCanvasRequest, user_id: UserId) -> JoinCanvasResponse:
        return await run_in_threadpool(api_service.join_canvas, user_id, body)

    @app.get(
        "/api/v1/canvases/{canvas_id}",
        response_model=CanvasDetailResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Canvases"],
        summary="Get canvas detail",
    )
    def get_canvas(
        canvas_id: int,
        viewer_id: Annotated[Optional[int], Depends(optional_user)] = None,
    ) -> CanvasDetailResponse:
        return api_service.get_canvas(canvas_id, viewer_id)

    @app.get(
        "/api/v1/canvases/{canvas_id}/colors",
        response_model=AvailableColorsResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Canvases"],
        summary="List colors that still have unfilled blocks",
    )
    def available_colors(canvas_id: int) -> AvailableColorsResponse:
        return api_service.available_colors(canvas_id)

    @app.post(
        "/api/v1/canvases/{canvas_id}/complete",
        response_model=CanvasResponse,
        responses=error_responses,
        tags=["Canvases"],
        summary="Complete a fully filled canvas",
    )
    def complete_canvas(canvas_id: int, user_id: UserId) -> CanvasResponse:
        return api_service.complete_canvas(user_id, canvas_id)

    @app.get(
        "/api/v1/canvases/{canvas_id}/photos/pending",
        response_model=PhotoListResponse,
        responses=error_responses,
        tags=["Photos"],
        summary="List photos awaiting review",
    )
    def pending_photos(canvas_id: int, user_id: UserId) -> PhotoListResponse:
        return api_service.pending_photos(user_id, canvas_id)

    # =========================================================================
    # Photo Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/photos",
        response_model=PhotoResponse,
        status_code=201,
        responses={**error_responses, 422: {"model": ErrorResponse}},
        tags=["Photos"],
        summary="Submit a photo for a block",
    )
    async def submit_photo(body: SubmitPhotoRequest, user_id: UserId) -> PhotoResponse:
        """
        Submit a photo.

        With `auto_validate=true` the photo's dominant color must be at least
        90% similar to the block color and cover at least 80% of the frame.
        Otherwise the request fails with `COLOR_MISMATCH` and nothing is stored.
        """
        submission = await run_in_threadpool(api_service.validate_submission, user_id, body)
        return await run_in_threadpool(api_service.commit_submission, submission)

    @app.get(
        "/api/v1/photos/mine",
        response_model=PhotoListResponse,
        tags=["Photos"],
        summary="List my submitted photos",
    )
    def my_photos(user_id: UserId) -> PhotoListResponse:
        return api_service.my_photos(user_id)

    @app.post(
        "/api/v1/photos/{photo_id}/accept",
        response_model=PhotoResponse,
        responses=error_responses,
        tags=["Photos"],
        summary="Accept a pending photo",
    )
    def accept_photo(photo_id: int, user_id: UserId) -> PhotoResponse:
        return api_service.accept_photo(user_id, photo_id)

    @app.post(
        "/api/v1/photos/{photo_id}/reject",
        response_model=RejectPhotoResponse,
        responses=error_responses,
        tags=["Photos"],
        summary="Reject a pending photo",
    )
    def reject_photo(photo_id: int, user_id: UserId) -> RejectPhotoResponse:
        return api_service.reject_photo(user_id, photo_id)

    @app.get(
        "/api/v1/gallery",
        response_model=GalleryResponse,
        tags=["Photos"],
        summary="List my accepted photos",
    )
    def my_gallery(user_id: UserId) -> GalleryResponse:
        return api_service.my_gallery(user_id)

    # =========================================================================
    # Feed Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/feed",
        response_model=FeedEntryResponse,
        status_code=201,
        responses=error_responses,
        tags=["Feed"],
        summary="Publish a completed canvas",
    )
    def publish(body: PublishRequest, user_id: UserId) -> FeedEntryResponse:
        return api_service.publish(user_id, body)

    @app.get(
        "/api/v1/feed",
        response_model=FeedListResponse,
        tags=["Feed"],
        summary="List feed posts",
    )
    def list_feed(
        page: Annotated[int, Query(ge=1)] = 1,
        limit: Annotated[int, Query(ge=1, le=100)] = 20,
    ) -> FeedListResponse:
        return api_service.list_feed(page, limit)

    @app.get(
        "/api/v1/feed/mine",
        response_model=FeedListResponse,
        tags=["Feed"],
        summary="List my feed posts",
    )
    def my_feed(user_id: UserId) -> FeedListResponse:
        return api_service.my_feed(user_id)

    @app.get(
        "/api/v1/feed/{entry_id}",
        response_model=FeedEntryResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Feed"],
        summary="Get a feed post",
    )
    def get_feed_entry(entry_id: int) -> FeedEntryResponse:
        return api_service.get_feed_entry(entry_id)

    @app.delete(
        "/api/v1/feed/{entry_id}",
        response_model=DeleteFeedEntryResponse,
        responses=error_responses,
        tags=["Feed"],
        summary="Delete my feed post",
    )
    def delete_feed_entry(entry_id: int, user_id: UserId) -> DeleteFeedEntryResponse:
        return api_service.delete_feed_entry(user_id, entry_id)

    # =========================================================================
    # Users
    # =========================================================================

    @app.get(
        "/api/v1/users/me/stats",
        response_model=UserStatsResponse,
        responses={401: {"model": ErrorResponse}},
        tags=["Users"],
        summary="My activity counts",
    )
    def user_stats(user_id: UserId) -> UserStatsResponse:
        return api_service.user_stats(user_id)

    # =========================================================================
    # Health
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="mosaic", version=__version__)

    return app
