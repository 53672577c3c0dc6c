"""
API Service - business logic layer between API and engine.

The service:
1. Wires the store, image fetcher, manager and feed publisher
2. Translates requests into engine calls
3. Formats engine entities as response schemas

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.).
Engine failures propagate as MosaicError for the transport to map.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from .schemas import (
    # Requests
    CreateCanvasRequest,
    JoinCanvasRequest,
    SubmitPhotoRequest,
    PublishRequest,
    # Responses
    CanvasResponse,
    CanvasDetailResponse,
    CanvasSummaryInfo,
    CanvasListResponse,
    AvailableColorsResponse,
    ColorAvailabilityInfo,
    JoinCanvasResponse,
    PhotoResponse,
    PhotoListResponse,
    RejectPhotoResponse,
    GalleryEntryInfo,
    GalleryResponse,
    FeedEntryResponse,
    FeedListResponse,
    DeleteFeedEntryResponse,
    UserStatsResponse,
    # Shared
    BlockInfo,
    ParticipationInfo,
    PaginationInfo,
    ColorValidationInfo,
    # Enums
    AssignmentType,
    CanvasStatus,
    PhotoStatus,
)
from ..canvas import (
    Canvas,
    CanvasManager,
    CanvasStore,
    CanvasSummary,
    FeedPublisher,
    InMemoryCanvasStore,
    Page,
    Participation,
    Photo,
    Submission,
)
from ..vision import BlobFetcher, HttpBlobFetcher, ImagePixelizer, ColorValidator


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        canvas = service.create_canvas(owner_id, CreateCanvasRequest(...))
        joined = service.join_canvas(user_id, JoinCanvasRequest(room_code=...))
        photo = service.submit_photo(user_id, SubmitPhotoRequest(...))
    """
    store: CanvasStore = field(default_factory=InMemoryCanvasStore)
    fetcher: BlobFetcher = field(default_factory=HttpBlobFetcher)
    manager: CanvasManager | None = None
    feed: FeedPublisher | None = None

    def __post_init__(self):
        if self.manager is None:
            self.manager = CanvasManager(
                store=self.store,
                pixelizer=ImagePixelizer(self.fetcher),
                validator=ColorValidator(self.fetcher),
            )
        if self.feed is None:
            self.feed = FeedPublisher(self.store, clock=self.manager.clock)

    # =========================================================================
    # Canvases
    # =========================================================================

    def create_canvas(self, owner_id: int, request: CreateCanvasRequest) -> CanvasResponse:
        canvas = self.manager.create_canvas(
            owner_id=owner_id,
            source_image_url=request.source_image_url,
            block_count=request.block_count,
            is_public=request.is_public,
            password=request.password,
            time_limit_minutes=request.time_limit_minutes,
            start_date=request.start_date,
            end_date=request.end_date,
            title=request.title,
            description=request.description,
            hashtags=request.hashtags,
        )
        return CanvasResponse(**self._canvas_fields(canvas))

    def get_canvas(self, canvas_id: int, viewer_id: int | None = None) -> CanvasDetailResponse:
        detail = self.manager.get_canvas(canvas_id, viewer_id)
        return CanvasDetailResponse(
            **self._canvas_fields(detail.canvas),
            blocks=[BlockInfo.model_validate(block) for block in detail.blocks],
            participants=[self._participation_info(p) for p in detail.participants],
            my_participation=(
                self._participation_info(detail.my_participation)
                if detail.my_participation else None
            ),
        )

    def available_colors(self, canvas_id: int) -> AvailableColorsResponse:
        return AvailableColorsResponse(
            canvas_id=canvas_id,
            colors=[
                ColorAvailabilityInfo(hex_color=color, remaining_blocks=count)
                for color, count in self.manager.available_colors(canvas_id)
            ],
        )

    def list_my_canvases(self, user_id: int) -> CanvasListResponse:
        summaries = self.manager.list_my_canvases(user_id)
        return CanvasListResponse(canvases=[self._summary_info(s) for s in summaries])

    def list_public_canvases(self, page: int = 1, limit: int = 20) -> CanvasListResponse:
        result = self.manager.list_public_canvases(page, limit)
        return CanvasListResponse(
            canvases=[self._summary_info(s) for s in result.items],
            pagination=self._pagination(result),
        )

    def join_canvas(self, user_id: int, request: JoinCanvasRequest) -> JoinCanvasResponse:
        participation = self.manager.join_canvas(
            user_id=user_id,
            room_code=request.room_code,
            policy=request.assignment_type.value,
            password=request.password,
            selected_color=request.selected_color,
        )
        canvas = self.manager.store.get_canvas(participation.canvas_id)
        return JoinCanvasResponse(
            canvas_id=participation.canvas_id,
            room_code=canvas.room_code,
            block_color=participation.block_color,
            assigned_blocks=participation.assigned_blocks,
            assignment_type=AssignmentType(participation.policy.value),
        )

    def complete_canvas(self, user_id: int, canvas_id: int) -> CanvasResponse:
        canvas = self.manager.complete_canvas(user_id, canvas_id)
        return CanvasResponse(**self._canvas_fields(canvas))

    # =========================================================================
    # Photos
    # =========================================================================

    def submit_photo(self, user_id: int, request: SubmitPhotoRequest) -> PhotoResponse:
        """Validate then commit in one call."""
        return self.commit_submission(self.validate_submission(user_id, request))

    def validate_submission(self, user_id: int, request: SubmitPhotoRequest) -> Submission:
        """Blocking image work; mutates nothing."""
        return self.manager.validate_submission(
            user_id=user_id,
            canvas_id=request.canvas_id,
            block_id=request.block_id,
            image_url=request.photo_url,
            auto_validate=request.auto_validate,
        )

    def commit_submission(self, submission: Submission) -> PhotoResponse:
        photo = self.manager.commit_submission(submission)
        return self._photo_response(photo)

    def accept_photo(self, user_id: int, photo_id: int) -> PhotoResponse:
        return self._photo_response(self.manager.accept_photo(user_id, photo_id))

    def reject_photo(self, user_id: int, photo_id: int) -> RejectPhotoResponse:
        self.manager.reject_photo(user_id, photo_id)
        return RejectPhotoResponse(photo_id=photo_id)

    def pending_photos(self, user_id: int, canvas_id: int) -> PhotoListResponse:
        photos = self.manager.pending_photos(user_id, canvas_id)
        return self._photo_list(photos)

    def my_photos(self, user_id: int) -> PhotoListResponse:
        return self._photo_list(self.manager.my_photos(user_id))

    def my_gallery(self, user_id: int) -> GalleryResponse:
        entries = self.manager.my_gallery(user_id)
        return GalleryResponse(
            entries=[GalleryEntryInfo.model_validate(e) for e in entries],
            count=len(entries),
        )

    # =========================================================================
    # Feed
    # =========================================================================

    def publish(self, user_id: int, request: PublishRequest) -> FeedEntryResponse:
        entry = self.feed.publish(user_id, request.canvas_id)
        return FeedEntryResponse.model_validate(entry)

    def list_feed(self, page: int = 1, limit: int = 20) -> FeedListResponse:
        result = self.feed.list_entries(page, limit)
        return FeedListResponse(
            posts=[FeedEntryResponse.model_validate(e) for e in result.items],
            pagination=self._pagination(result),
        )

    def get_feed_entry(self, entry_id: int) -> FeedEntryResponse:
        return FeedEntryResponse.model_validate(self.feed.get_entry(entry_id))

    def my_feed(self, user_id: int) -> FeedListResponse:
        entries = self.feed.entries_for_owner(user_id)
        return FeedListResponse(posts=[FeedEntryResponse.model_validate(e) for e in entries])

    def delete_feed_entry(self, user_id: int, entry_id: int) -> DeleteFeedEntryResponse:
        self.feed.delete_entry(user_id, entry_id)
        return DeleteFeedEntryResponse(entry_id=entry_id)

    # =========================================================================
    # Users
    # =========================================================================

    def user_stats(self, user_id: int) -> UserStatsResponse:
        stats = self.manager.user_stats(user_id)
        return UserStatsResponse(
            user_id=user_id,
            canvases_joined=stats.canvases_joined,
            accepted_photos=stats.accepted_photos,
            published_posts=stats.published_posts,
        )

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _canvas_fields(self, canvas: Canvas) -> dict:
        """Common CanvasResponse fields."""
        return {
            "canvas_id": canvas.canvas_id,
            "room_code": canvas.room_code,
            "owner_id": canvas.owner_id,
            "status": CanvasStatus(canvas.status.value),
            "is_public": canvas.is_public,
            "block_count": canvas.block_count,
            "rows": canvas.rows,
            "cols": canvas.cols,
            "source_image_url": canvas.source_image_url,
            "created_at": canvas.created_at,
            "start_date": canvas.start_date,
            "end_date": canvas.end_date,
            "title": canvas.title,
            "description": canvas.description,
            "hashtags": list(canvas.hashtags),
        }

    def _participation_info(self, participation: Participation) -> ParticipationInfo:
        return ParticipationInfo(
            canvas_id=participation.canvas_id,
            user_id=participation.user_id,
            block_color=participation.block_color,
            assigned_blocks=participation.assigned_blocks,
            assignment_type=AssignmentType(participation.policy.value),
            joined_at=participation.joined_at,
        )

    def _summary_info(self, summary: CanvasSummary) -> CanvasSummaryInfo:
        canvas = summary.canvas
        return CanvasSummaryInfo(
            canvas_id=canvas.canvas_id,
            room_code=canvas.room_code,
            owner_id=canvas.owner_id,
            status=CanvasStatus(canvas.status.value),
            is_public=canvas.is_public,
            title=canvas.title,
            participant_count=summary.participant_count,
            total_blocks=summary.total_blocks,
            filled_blocks=summary.filled_blocks,
            progress=summary.progress,
            created_at=canvas.created_at,
            start_date=canvas.start_date,
            end_date=canvas.end_date,
        )

    def _photo_response(self, photo: Photo) -> PhotoResponse:
        return PhotoResponse(
            photo_id=photo.photo_id,
            canvas_id=photo.canvas_id,
            block_id=photo.block_id,
            user_id=photo.user_id,
            photo_url=photo.image_url,
            status=PhotoStatus(photo.status.value),
            submitted_at=photo.submitted_at,
            auto_accepted=photo.is_accepted and photo.validation is not None,
            color_validation=(
                ColorValidationInfo(**photo.validation) if photo.validation else None
            ),
        )

    def _photo_list(self, photos: list[Photo]) -> PhotoListResponse:
        return PhotoListResponse(
            photos=[self._photo_response(p) for p in photos],
            count=len(photos),
        )

    @staticmethod
    def _pagination(result: Page) -> PaginationInfo:
        return PaginationInfo(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        )
