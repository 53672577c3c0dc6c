"""
Tests for FeedPublisher.
"""

import pytest

from .conftest import RED, solid_png
from ..canvas import PhotoStatus
from ..errors import (
    AlreadyPublished,
    ForbiddenError,
    IncompleteBlocks,
    InvalidState,
    NotFoundError,
    ValidationError,
)


def complete(manager, canvas, user_id=2, first_photo="photo/red.png"):
    """Fill every block (block 0 with first_photo) and complete the canvas."""
    manager.join_canvas(user_id, canvas.room_code)
    for block in manager.store.blocks_for_canvas(canvas.canvas_id):
        photo = first_photo if block.order_index == 0 else "photo/red.png"
        manager.submit_photo(user_id, canvas.canvas_id, block.block_id, photo)
    return manager.complete_canvas(canvas.owner_id, canvas.canvas_id)


class TestFeedPublisher:
    """Tests for publishing and listing feed entries."""

    def test_publish(self, manager, feed, fetcher, clock, red_canvas):
        fetcher.put("photo/first.png", solid_png(RED, width=20, height=20))
        complete(manager, red_canvas, first_photo="photo/first.png")

        entry = feed.publish(1, red_canvas.canvas_id)

        assert entry.entry_id == 1
        assert entry.canvas_id == red_canvas.canvas_id
        assert entry.owner_id == 1
        assert entry.final_image_url == "photo/first.png"
        assert entry.created_at == clock.now

    def test_publish_twice(self, manager, feed, red_canvas):
        complete(manager, red_canvas)
        feed.publish(1, red_canvas.canvas_id)

        with pytest.raises(AlreadyPublished):
            feed.publish(1, red_canvas.canvas_id)
        assert len(manager.store.list_feed_entries()) == 1

    def test_publish_open_canvas(self, feed, red_canvas):
        with pytest.raises(InvalidState):
            feed.publish(1, red_canvas.canvas_id)

    def test_publish_requires_owner(self, manager, feed, red_canvas):
        complete(manager, red_canvas)
        with pytest.raises(ForbiddenError):
            feed.publish(2, red_canvas.canvas_id)

    def test_publish_unknown_canvas(self, feed):
        with pytest.raises(NotFoundError):
            feed.publish(1, 999)

    def test_publish_requires_accepted_photos(self, manager, feed, store, red_canvas):
        complete(manager, red_canvas)
        block = store.blocks_for_canvas(red_canvas.canvas_id)[5]
        photo = store.get_photo(block.photo_id)
        photo.status = PhotoStatus.PENDING
        store.update_photo(photo)

        with pytest.raises(IncompleteBlocks):
            feed.publish(1, red_canvas.canvas_id)
        assert store.list_feed_entries() == []

    def test_list_newest_first(self, manager, feed, clock):
        published = []
        for _ in range(3):
            canvas = manager.create_canvas(1, "source/red.png")
            complete(manager, canvas)
            published.append(feed.publish(1, canvas.canvas_id).entry_id)
            clock.advance(minutes=1)

        page = feed.list_entries(page=1, limit=2)

        assert [e.entry_id for e in page.items] == [published[2], published[1]]
        assert page.total == 3
        assert page.total_pages == 2
        assert [e.entry_id for e in feed.list_entries(page=2, limit=2).items] == [published[0]]

    def test_list_paging_validation(self, feed):
        with pytest.raises(ValidationError):
            feed.list_entries(page=0)

    def test_get_entry(self, manager, feed, red_canvas):
        complete(manager, red_canvas)
        entry = feed.publish(1, red_canvas.canvas_id)

        assert feed.get_entry(entry.entry_id) == entry
        with pytest.raises(NotFoundError):
            feed.get_entry(999)

    def test_entries_for_owner(self, manager, feed, red_canvas):
        other = manager.create_canvas(7, "source/red.png")
        complete(manager, red_canvas)
        complete(manager, other)
        feed.publish(1, red_canvas.canvas_id)
        feed.publish(7, other.canvas_id)

        assert [e.canvas_id for e in feed.entries_for_owner(7)] == [other.canvas_id]
        assert feed.entries_for_owner(3) == []

    def test_delete_entry(self, manager, feed, red_canvas):
        complete(manager, red_canvas)
        entry = feed.publish(1, red_canvas.canvas_id)

        feed.delete_entry(1, entry.entry_id)

        with pytest.raises(NotFoundError):
            feed.get_entry(entry.entry_id)
        assert feed.list_entries().total == 0

        again = feed.publish(1, red_canvas.canvas_id)
        assert again.entry_id != entry.entry_id
        assert [e.entry_id for e in feed.entries_for_owner(1)] == [again.entry_id]

    def test_delete_entry_requires_owner(self, manager, feed, red_canvas):
        complete(manager, red_canvas)
        entry = feed.publish(1, red_canvas.canvas_id)

        with pytest.raises(ForbiddenError):
            feed.delete_entry(2, entry.entry_id)
        assert feed.get_entry(entry.entry_id) == entry

    def test_delete_unknown_entry(self, feed):
        with pytest.raises(NotFoundError) as exc:
            feed.delete_entry(1, 999)
        assert exc.value.details == {"entry_id": 999}
