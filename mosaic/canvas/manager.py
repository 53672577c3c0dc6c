"""
Canvas Manager - lifecycle and block-assignment state machine.

LIFECYCLE:
1. Owner creates a canvas from a source image -> pixelized color grid
2. Participants join by room code and receive a target color
3. Participants submit photos for blocks
   - Auto-validated photos fill the block immediately
   - Manually reviewed photos wait for the owner to accept or reject
4. Owner completes the canvas once every block is filled
5. Owner publishes the completed canvas to the feed (see feed.py)

STATES:
    Canvas: OPEN -> COMPLETED (terminal)
    Block:  empty <-> filled (reversible only by rejecting a pending photo)

CONCURRENCY:
- Image fetch/decode/validate runs before any transaction starts
- Every check-then-act runs inside one store transaction, so concurrent
  fills of the same block produce exactly one winner
- Uniqueness (room code, one join per user) is enforced by the store,
  not by earlier lookups
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable
import logging
import random
import string

from .assignment import resolve_color, blocks_owed, color_counts
from .models import (
    AssignmentPolicy,
    Block,
    Canvas,
    CanvasDetail,
    CanvasStatus,
    CanvasSummary,
    GalleryEntry,
    Page,
    Participation,
    Photo,
    PhotoStatus,
    UserStats,
)
from .store import CanvasStore, UniqueViolation
from ..config import ROOM_CODE_ATTEMPTS
from ..errors import (
    AlreadyCompleted,
    AlreadyFilled,
    AlreadyJoined,
    ClosedError,
    ColorMismatch,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    IncompleteBlocks,
    InvalidState,
    NoCapacity,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ..security import PasswordHasher
from ..vision.pixelizer import ImagePixelizer, grid_dimensions
from ..vision.validator import ColorValidator, ColorValidation

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Submission:
    """
    A photo submission that passed validation but is not yet committed.

    validation is None for submissions routed to manual review.
    """
    user_id: int
    canvas_id: int
    block_id: int
    image_url: str
    target_color: str
    validation: ColorValidation | None = None

    @property
    def auto_accepted(self) -> bool:
        return self.validation is not None and self.validation.is_valid


class CanvasManager:
    """
    Owns Canvas, Block, Participation and Photo state transitions.

    Usage:
        manager = CanvasManager(store, pixelizer, validator)
        canvas = manager.create_canvas(owner_id=1, source_image_url=url)
        manager.join_canvas(user_id=2, room_code=canvas.room_code, policy="random")
        photo = manager.submit_photo(2, canvas.canvas_id, block_id, photo_url)
        manager.complete_canvas(1, canvas.canvas_id)
    """

    def __init__(
        self,
        store: CanvasStore,
        pixelizer: ImagePixelizer,
        validator: ColorValidator,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
        room_code_attempts: int = ROOM_CODE_ATTEMPTS,
    ):
        self.store = store
        self.pixelizer = pixelizer
        self.validator = validator
        self.hasher = hasher or PasswordHasher()
        self.clock = clock
        self.rng = rng or random.SystemRandom()
        self.room_code_attempts = room_code_attempts

    # =========================================================================
    # Create
    # =========================================================================

    def generate_room_code(self) -> str:
        """Draw a random 6-character A-Z0-9 code."""
        return "".join(self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))

    def create_canvas(
        self,
        owner_id: int,
        source_image_url: str,
        block_count: int = 16,
        is_public: bool = True,
        password: str | None = None,
        time_limit_minutes: int | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        title: str | None = None,
        description: str | None = None,
        hashtags: list[str] | None = None,
    ) -> Canvas:
        """
        Create a canvas whose blocks are pixelized from the source image.

        Image failures abort creation before anything is persisted.
        """
        rows, cols = grid_dimensions(block_count)

        if not is_public and not password:
            raise ValidationError("Private canvas requires a password")

        now = self.clock()
        start_date = _as_utc(start_date)
        end_date = _as_utc(end_date)
        if time_limit_minutes is not None:
            if time_limit_minutes <= 0:
                raise ValidationError("Time limit must be positive")
            end_date = now + timedelta(minutes=time_limit_minutes)
        if end_date is not None and end_date < now:
            raise ValidationError("End date must not be before creation time")
        if start_date is not None and end_date is not None and end_date < start_date:
            raise ValidationError("End date must not be before start date")

        password_hash = self.hasher.hash(password) if password else None

        color_blocks = self.pixelizer.pixelize(source_image_url, block_count)

        for attempt in range(1, self.room_code_attempts + 1):
            room_code = self.generate_room_code()
            if self.store.get_canvas_by_room_code(room_code):
                logger.debug("Room code %s taken, drawing again", room_code)
                continue

            try:
                with self.store.transaction():
                    canvas = self.store.insert_canvas(
                        Canvas(
                            canvas_id=0,
                            room_code=room_code,
                            owner_id=owner_id,
                            source_image_url=source_image_url,
                            block_count=block_count,
                            rows=rows,
                            cols=cols,
                            created_at=now,
                            is_public=is_public,
                            password_hash=password_hash,
                            start_date=start_date,
                            end_date=end_date,
                            title=title,
                            description=description,
                            hashtags=list(hashtags or []),
                        )
                    )
                    self.store.insert_blocks([
                        Block(
                            block_id=0,
                            canvas_id=canvas.canvas_id,
                            order_index=cb.order_index,
                            row=cb.row,
                            col=cb.col,
                            hex_color=cb.hex_color,
                        )
                        for cb in color_blocks
                    ])
            except UniqueViolation as e:
                if e.constraint != "canvas.room_code":
                    raise
                logger.warning("Room code %s collided on insert (attempt %d)", room_code, attempt)
                continue

            logger.info(
                "Created canvas %d room=%s blocks=%d owner=%d",
                canvas.canvas_id, canvas.room_code, block_count, owner_id,
            )
            return canvas

        raise ConflictError(
            f"Could not allocate a unique room code after {self.room_code_attempts} attempts"
        )

    # =========================================================================
    # Join
    # =========================================================================

    def join_canvas(
        self,
        user_id: int,
        room_code: str,
        policy: AssignmentPolicy | str = AssignmentPolicy.RANDOM,
        password: str | None = None,
        selected_color: str | None = None,
    ) -> Participation:
        """Join a canvas and receive a target color."""
        try:
            policy = AssignmentPolicy(policy)
        except ValueError:
            raise ValidationError(
                "Assignment type must be 'random', 'select', or 'recommend'"
            ) from None

        canvas = self.store.get_canvas_by_room_code(room_code.strip().upper())
        if canvas is None:
            raise NotFoundError("Canvas not found", details={"room_code": room_code})

        if not canvas.is_public:
            if not password:
                raise UnauthorizedError("Password required for private canvas")
            if not canvas.password_hash or not self.hasher.verify(password, canvas.password_hash):
                raise UnauthorizedError("Incorrect password")

        with self.store.transaction():
            canvas = self._require_canvas(canvas.canvas_id)
            self._check_window(canvas)

            if self.store.find_participation(canvas.canvas_id, user_id):
                raise AlreadyJoined("Already joined this canvas")

            blocks = self.store.blocks_for_canvas(canvas.canvas_id)
            if not any(not block.is_filled for block in blocks):
                raise NoCapacity("No unfilled blocks remain")

            color = resolve_color(policy, blocks, selected_color, self.rng)
            participants = self.store.participations_for_canvas(canvas.canvas_id)

            try:
                participation = self.store.insert_participation(
                    Participation(
                        participation_id=0,
                        canvas_id=canvas.canvas_id,
                        user_id=user_id,
                        block_color=color,
                        assigned_blocks=blocks_owed(len(blocks), len(participants)),
                        policy=policy,
                        joined_at=self.clock(),
                    )
                )
            except UniqueViolation:
                raise AlreadyJoined("Already joined this canvas") from None

        logger.info(
            "User %d joined canvas %d color=%s policy=%s",
            user_id, canvas.canvas_id, color, policy.value,
        )
        return participation

    def _check_window(self, canvas: Canvas) -> None:
        now = self.clock()
        if not canvas.is_open:
            raise ClosedError("Canvas is already completed")
        if not canvas.has_started(now):
            raise ClosedError("Canvas participation period has not started")
        if canvas.is_expired(now):
            raise ExpiredError("Canvas participation period has ended")

    # =========================================================================
    # Submit
    # =========================================================================

    def submit_photo(
        self,
        user_id: int,
        canvas_id: int,
        block_id: int,
        image_url: str,
        auto_validate: bool = True,
    ) -> Photo:
        """
        Submit a photo for a block.

        With auto_validate the photo is checked against the block color
        and, if it matches, accepted and the block filled in one step.
        Without it the photo waits for the owner's review.

        Raises:
            ColorMismatch: Photo failed validation; nothing is stored
            AlreadyFilled: Block was filled (or reserved) first
        """
        submission = self.validate_submission(
            user_id, canvas_id, block_id, image_url, auto_validate
        )
        return self.commit_submission(submission)

    def validate_submission(
        self,
        user_id: int,
        canvas_id: int,
        block_id: int,
        image_url: str,
        auto_validate: bool = True,
    ) -> Submission:
        """
        Check preconditions and run color validation without mutating state.

        Safe to abandon at any point.
        """
        canvas = self._require_canvas(canvas_id)
        block = self._check_submission(canvas, user_id, block_id)

        validation = None
        if auto_validate:
            validation = self.validator.validate(image_url, block.hex_color)
            if not validation.is_valid:
                logger.info(
                    "Rejected photo for block %d on canvas %d: %s",
                    block_id, canvas_id, validation.reason,
                )
                raise ColorMismatch(validation)

        return Submission(
            user_id=user_id,
            canvas_id=canvas_id,
            block_id=block_id,
            image_url=image_url,
            target_color=block.hex_color,
            validation=validation,
        )

    def commit_submission(self, submission: Submission) -> Photo:
        """Persist a validated submission atomically."""
        with self.store.transaction():
            canvas = self._require_canvas(submission.canvas_id)
            block = self._check_submission(canvas, submission.user_id, submission.block_id)
            accepted = submission.auto_accepted

            photo = self.store.insert_photo(
                Photo(
                    photo_id=0,
                    canvas_id=canvas.canvas_id,
                    block_id=block.block_id,
                    user_id=submission.user_id,
                    image_url=submission.image_url,
                    submitted_at=self.clock(),
                    status=PhotoStatus.ACCEPTED if accepted else PhotoStatus.PENDING,
                    validation=submission.validation.to_dict() if submission.validation else None,
                )
            )

            block.photo_id = photo.photo_id
            block.filled_by = submission.user_id
            block.is_filled = accepted
            self.store.update_block(block)

            if accepted:
                self._record_gallery(photo, block)

        logger.info(
            "Photo %d submitted for block %d on canvas %d (%s)",
            photo.photo_id, block.block_id, canvas.canvas_id, photo.status.value,
        )
        return photo

    def _check_submission(self, canvas: Canvas, user_id: int, block_id: int) -> Block:
        if not canvas.is_open:
            raise ClosedError("Canvas is already completed")

        if not self.store.find_participation(canvas.canvas_id, user_id):
            raise ForbiddenError("You are not a participant of this canvas")

        block = self.store.get_block(block_id)
        if block is None or block.canvas_id != canvas.canvas_id:
            raise NotFoundError("Block not found", details={"block_id": block_id})

        if block.is_filled:
            raise AlreadyFilled("Block is already filled", details={"block_id": block_id})
        if block.photo_id is not None:
            raise AlreadyFilled(
                "Block has a photo awaiting review", details={"block_id": block_id}
            )
        return block

    # =========================================================================
    # Review
    # =========================================================================

    def accept_photo(self, user_id: int, photo_id: int) -> Photo:
        """Owner accepts a pending photo; its block becomes filled."""
        with self.store.transaction():
            photo = self._require_photo(photo_id)
            canvas = self._require_canvas(photo.canvas_id)
            self._require_owner(canvas, user_id, "Only canvas creator can accept photos")

            if photo.is_accepted:
                raise InvalidState("Photo is already accepted")

            photo.status = PhotoStatus.ACCEPTED
            photo = self.store.update_photo(photo)

            block = self.store.get_block(photo.block_id)
            block.is_filled = True
            block.filled_by = photo.user_id
            block.photo_id = photo.photo_id
            self.store.update_block(block)

            self._record_gallery(photo, block)

        logger.info("Photo %d accepted on canvas %d", photo_id, canvas.canvas_id)
        return photo

    def reject_photo(self, user_id: int, photo_id: int) -> None:
        """Owner rejects a pending photo; it is deleted and its block emptied."""
        with self.store.transaction():
            photo = self._require_photo(photo_id)
            canvas = self._require_canvas(photo.canvas_id)
            self._require_owner(canvas, user_id, "Only canvas creator can reject photos")

            if photo.is_accepted:
                raise InvalidState("Cannot reject an accepted photo")

            block = self.store.get_block(photo.block_id)
            if block is not None and block.photo_id == photo.photo_id:
                block.is_filled = False
                block.filled_by = None
                block.photo_id = None
                self.store.update_block(block)

            self.store.delete_photo(photo_id)

        logger.info("Photo %d rejected on canvas %d", photo_id, canvas.canvas_id)

    def _record_gallery(self, photo: Photo, block: Block) -> GalleryEntry:
        return self.store.insert_gallery_entry(
            GalleryEntry(
                entry_id=0,
                user_id=photo.user_id,
                photo_id=photo.photo_id,
                canvas_id=photo.canvas_id,
                block_color=block.hex_color,
                created_at=self.clock(),
            )
        )

    # =========================================================================
    # Complete
    # =========================================================================

    def complete_canvas(self, user_id: int, canvas_id: int) -> Canvas:
        """Move a fully filled canvas to COMPLETED."""
        with self.store.transaction():
            canvas = self._require_canvas(canvas_id)
            self._require_owner(canvas, user_id, "Only canvas creator can complete it")

            if canvas.is_completed:
                raise AlreadyCompleted("Canvas is already completed")

            blocks = self.store.blocks_for_canvas(canvas_id)
            filled = sum(1 for block in blocks if block.is_filled)
            if filled < len(blocks):
                raise IncompleteBlocks(
                    "Not all blocks are filled yet",
                    details={"filled_blocks": filled, "total_blocks": len(blocks)},
                )

            canvas.status = CanvasStatus.COMPLETED
            canvas = self.store.update_canvas(canvas)

        logger.info("Canvas %d completed", canvas_id)
        return canvas

    # =========================================================================
    # Queries
    # =========================================================================

    def available_colors(self, canvas_id: int) -> list[tuple[str, int]]:
        """Unfilled colors with remaining block counts, in grid order."""
        self._require_canvas(canvas_id)
        return list(color_counts(self.store.blocks_for_canvas(canvas_id)).items())

    def get_canvas(self, canvas_id: int, viewer_id: int | None = None) -> CanvasDetail:
        canvas = self._require_canvas(canvas_id)
        participants = self.store.participations_for_canvas(canvas_id)
        mine = None
        if viewer_id is not None:
            mine = next((p for p in participants if p.user_id == viewer_id), None)
        return CanvasDetail(
            canvas=canvas,
            blocks=self.store.blocks_for_canvas(canvas_id),
            participants=participants,
            my_participation=mine,
        )

    def list_my_canvases(self, user_id: int) -> list[CanvasSummary]:
        """Canvases the user owns or joined, newest first."""
        joined = {p.canvas_id for p in self.store.participations_for_user(user_id)}
        canvases = [
            c for c in self.store.list_canvases()
            if c.owner_id == user_id or c.canvas_id in joined
        ]
        return [self._summarize(c) for c in _newest_first(canvases)]

    def list_public_canvases(self, page: int = 1, limit: int = 20) -> Page:
        """Public OPEN canvases, newest first."""
        check_paging(page, limit)
        canvases = _newest_first([
            c for c in self.store.list_canvases() if c.is_public and c.is_open
        ])
        start = (page - 1) * limit
        return Page(
            items=[self._summarize(c) for c in canvases[start:start + limit]],
            page=page,
            limit=limit,
            total=len(canvases),
        )

    def pending_photos(self, user_id: int, canvas_id: int) -> list[Photo]:
        """Photos awaiting review, oldest first. Owner only."""
        canvas = self._require_canvas(canvas_id)
        self._require_owner(canvas, user_id, "Only canvas creator can view pending photos")
        photos = [
            p for p in self.store.photos_for_canvas(canvas_id)
            if p.status == PhotoStatus.PENDING
        ]
        return sorted(photos, key=lambda p: (p.submitted_at, p.photo_id))

    def my_photos(self, user_id: int) -> list[Photo]:
        photos = self.store.photos_for_user(user_id)
        return sorted(photos, key=lambda p: (p.submitted_at, p.photo_id), reverse=True)

    def my_gallery(self, user_id: int) -> list[GalleryEntry]:
        entries = self.store.gallery_for_user(user_id)
        return sorted(entries, key=lambda e: (e.created_at, e.entry_id), reverse=True)

    def user_stats(self, user_id: int) -> UserStats:
        """
        Activity counts for a user:
        - canvases joined
        - photos of theirs that were accepted
        - feed posts of canvases they own
        """
        owned = {c.canvas_id for c in self.store.list_canvases() if c.owner_id == user_id}
        return UserStats(
            canvases_joined=len(self.store.participations_for_user(user_id)),
            accepted_photos=sum(1 for p in self.store.photos_for_user(user_id) if p.is_accepted),
            published_posts=sum(
                1 for e in self.store.list_feed_entries() if e.canvas_id in owned
            ),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _summarize(self, canvas: Canvas) -> CanvasSummary:
        blocks = self.store.blocks_for_canvas(canvas.canvas_id)
        return CanvasSummary(
            canvas=canvas,
            participant_count=len(self.store.participations_for_canvas(canvas.canvas_id)),
            total_blocks=len(blocks),
            filled_blocks=sum(1 for b in blocks if b.is_filled),
        )

    def _require_canvas(self, canvas_id: int) -> Canvas:
        canvas = self.store.get_canvas(canvas_id)
        if canvas is None:
            raise NotFoundError("Canvas not found", details={"canvas_id": canvas_id})
        return canvas

    def _require_photo(self, photo_id: int) -> Photo:
        photo = self.store.get_photo(photo_id)
        if photo is None:
            raise NotFoundError("Photo not found", details={"photo_id": photo_id})
        return photo

    @staticmethod
    def _require_owner(canvas: Canvas, user_id: int, message: str) -> None:
        if canvas.owner_id != user_id:
            raise ForbiddenError(message)


def _newest_first(canvases: list[Canvas]) -> list[Canvas]:
    return sorted(canvases, key=lambda c: (c.created_at, c.canvas_id), reverse=True)


def check_paging(page: int, limit: int) -> None:
    if page < 1 or limit < 1:
        raise ValidationError("Page and limit must be positive")
