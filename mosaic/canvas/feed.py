"""
Feed Publisher - promotes completed canvases to the public feed.

A canvas may be published once, by its owner, after it is COMPLETED
and every block holds an accepted photo. Deleting the post lets the
owner publish the canvas again.
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable
import logging

from .manager import utcnow, check_paging
from .models import FeedEntry, Page
from .store import CanvasStore, UniqueViolation
from ..errors import (
    AlreadyPublished,
    ForbiddenError,
    IncompleteBlocks,
    InvalidState,
    NotFoundError,
)

logger = logging.getLogger(__name__)


class FeedPublisher:
    """
    Creates and lists feed entries.

    Usage:
        feed = FeedPublisher(store)
        entry = feed.publish(owner_id, canvas_id)
        page = feed.list_entries(page=1, limit=20)
    """

    def __init__(self, store: CanvasStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def publish(self, user_id: int, canvas_id: int) -> FeedEntry:
        with self.store.transaction():
            canvas = self.store.get_canvas(canvas_id)
            if canvas is None:
                raise NotFoundError("Canvas not found", details={"canvas_id": canvas_id})

            if canvas.owner_id != user_id:
                raise ForbiddenError("Only canvas creator can create feed post")

            if not canvas.is_completed:
                raise InvalidState("Canvas must be completed before posting to feed")

            if self.store.feed_entry_for_canvas(canvas_id):
                raise AlreadyPublished("Canvas is already posted to feed")

            blocks = self.store.blocks_for_canvas(canvas_id)
            photos = {}
            for block in blocks:
                photo = self.store.get_photo(block.photo_id) if block.photo_id else None
                if not block.is_filled or photo is None or not photo.is_accepted:
                    raise IncompleteBlocks(
                        "All blocks must be filled and accepted",
                        details={"block_id": block.block_id},
                    )
                photos[block.order_index] = photo

            try:
                entry = self.store.insert_feed_entry(
                    FeedEntry(
                        entry_id=0,
                        canvas_id=canvas_id,
                        owner_id=user_id,
                        final_image_url=photos[0].image_url,
                        created_at=self.clock(),
                    )
                )
            except UniqueViolation:
                raise AlreadyPublished("Canvas is already posted to feed") from None

        logger.info("Canvas %d published to feed as entry %d", canvas_id, entry.entry_id)
        return entry

    def get_entry(self, entry_id: int) -> FeedEntry:
        entry = self.store.get_feed_entry(entry_id)
        if entry is None:
            raise NotFoundError("Feed post not found", details={"entry_id": entry_id})
        return entry

    def list_entries(self, page: int = 1, limit: int = 20) -> Page:
        """Feed entries, newest first."""
        check_paging(page, limit)
        entries = _newest_first(self.store.list_feed_entries())
        start = (page - 1) * limit
        return Page(
            items=entries[start:start + limit],
            page=page,
            limit=limit,
            total=len(entries),
        )

    def delete_entry(self, user_id: int, entry_id: int) -> None:
        """Owner removes a feed post; the canvas may be published again."""
        with self.store.transaction():
            entry = self.get_entry(entry_id)
            if entry.owner_id != user_id:
                raise ForbiddenError("Only canvas creator can delete feed post")
            self.store.delete_feed_entry(entry_id)

        logger.info("Feed entry %d deleted by user %d", entry_id, user_id)

    def entries_for_owner(self, user_id: int) -> list[FeedEntry]:
        return _newest_first([
            e for e in self.store.list_feed_entries() if e.owner_id == user_id
        ])


def _newest_first(entries: list[FeedEntry]) -> list[FeedEntry]:
    return sorted(entries, key=lambda e: (e.created_at, e.entry_id), reverse=True)
