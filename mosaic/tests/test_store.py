"""
Tests for the in-memory canvas store and assignment policies.

Tests:
- Id assignment and copy isolation
- Uniqueness constraints
- Transaction rollback
- Color assignment policies
"""

import random
from datetime import datetime, timezone

import pytest

from ..canvas import (
    AssignmentPolicy,
    Block,
    Canvas,
    FeedEntry,
    InMemoryCanvasStore,
    Participation,
    UniqueViolation,
)
from ..canvas.assignment import blocks_owed, color_counts, resolve_color
from ..errors import ColorUnavailable, ValidationError

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_canvas(room_code="ABC123", owner_id=1):
    return Canvas(
        canvas_id=0,
        room_code=room_code,
        owner_id=owner_id,
        source_image_url="source/red.png",
        block_count=16,
        rows=4,
        cols=4,
        created_at=NOW,
    )


def make_blocks(canvas_id, colors):
    return [
        Block(block_id=0, canvas_id=canvas_id, order_index=i, row=i // 4, col=i % 4, hex_color=c)
        for i, c in enumerate(colors)
    ]


def make_participation(canvas_id, user_id):
    return Participation(
        participation_id=0,
        canvas_id=canvas_id,
        user_id=user_id,
        block_color="#FF0000",
        assigned_blocks=1,
        policy=AssignmentPolicy.RANDOM,
        joined_at=NOW,
    )


class TestInMemoryCanvasStore:
    """Tests for InMemoryCanvasStore."""

    def test_ids_are_sequential(self, store):
        first = store.insert_canvas(make_canvas("AAAAAA"))
        second = store.insert_canvas(make_canvas("BBBBBB"))
        assert (first.canvas_id, second.canvas_id) == (1, 2)

    def test_reads_are_copies(self, store):
        canvas = store.insert_canvas(make_canvas())
        fetched = store.get_canvas(canvas.canvas_id)
        fetched.title = "changed"

        assert store.get_canvas(canvas.canvas_id).title is None

    def test_room_code_unique(self, store):
        store.insert_canvas(make_canvas("ABC123"))
        with pytest.raises(UniqueViolation) as exc:
            store.insert_canvas(make_canvas("ABC123"))
        assert exc.value.constraint == "canvas.room_code"

    def test_lookup_by_room_code(self, store):
        canvas = store.insert_canvas(make_canvas("ZZ9ZZ9"))
        assert store.get_canvas_by_room_code("ZZ9ZZ9").canvas_id == canvas.canvas_id
        assert store.get_canvas_by_room_code("NOPE00") is None

    def test_participation_unique_per_user(self, store):
        canvas = store.insert_canvas(make_canvas())
        store.insert_participation(make_participation(canvas.canvas_id, 2))
        with pytest.raises(UniqueViolation):
            store.insert_participation(make_participation(canvas.canvas_id, 2))

        # Another user is fine
        store.insert_participation(make_participation(canvas.canvas_id, 3))
        assert len(store.participations_for_canvas(canvas.canvas_id)) == 2

    def test_one_feed_entry_per_canvas(self, store):
        entry = FeedEntry(entry_id=0, canvas_id=1, owner_id=1, final_image_url="x", created_at=NOW)
        store.insert_feed_entry(entry)
        with pytest.raises(UniqueViolation):
            store.insert_feed_entry(entry)

    def test_deleted_feed_entry_frees_canvas(self, store):
        entry = FeedEntry(entry_id=0, canvas_id=1, owner_id=1, final_image_url="x", created_at=NOW)
        first = store.insert_feed_entry(entry)

        store.delete_feed_entry(first.entry_id)

        assert store.get_feed_entry(first.entry_id) is None
        assert store.feed_entry_for_canvas(1) is None
        assert store.insert_feed_entry(entry).entry_id == first.entry_id + 1

    def test_blocks_sorted_by_order_index(self, store):
        canvas = store.insert_canvas(make_canvas())
        blocks = make_blocks(canvas.canvas_id, ["#000001", "#000002", "#000003"])
        store.insert_blocks(list(reversed(blocks)))

        ordered = store.blocks_for_canvas(canvas.canvas_id)
        assert [b.order_index for b in ordered] == [0, 1, 2]

    def test_blocks_require_canvas(self, store):
        with pytest.raises(KeyError):
            store.insert_blocks(make_blocks(99, ["#FF0000"]))

    def test_update_missing_row(self, store):
        with pytest.raises(KeyError):
            store.update_canvas(make_canvas())

    def test_delete_canvas_removes_blocks(self, store):
        canvas = store.insert_canvas(make_canvas())
        store.insert_blocks(make_blocks(canvas.canvas_id, ["#FF0000"] * 4))

        store.delete_canvas(canvas.canvas_id)

        assert store.get_canvas(canvas.canvas_id) is None
        assert store.blocks_for_canvas(canvas.canvas_id) == []

    def test_transaction_rolls_back(self, store):
        """A failing transaction leaves no partial writes."""
        with pytest.raises(RuntimeError):
            with store.transaction():
                canvas = store.insert_canvas(make_canvas())
                store.insert_blocks(make_blocks(canvas.canvas_id, ["#FF0000"] * 16))
                raise RuntimeError("boom")

        assert store.list_canvases() == []
        assert store.blocks_for_canvas(1) == []
        # Sequences roll back too
        assert store.insert_canvas(make_canvas()).canvas_id == 1

    def test_nested_transaction_rolls_back_with_outer(self, store):
        with pytest.raises(UniqueViolation):
            with store.transaction():
                store.insert_canvas(make_canvas("AAAAAA"))
                with store.transaction():
                    store.insert_canvas(make_canvas("AAAAAA"))

        assert store.list_canvases() == []

    def test_update_inside_transaction_rolls_back(self, store):
        canvas = store.insert_canvas(make_canvas())
        (block,) = store.insert_blocks(make_blocks(canvas.canvas_id, ["#FF0000"]))

        with pytest.raises(RuntimeError):
            with store.transaction():
                block.is_filled = True
                store.update_block(block)
                raise RuntimeError("boom")

        assert not store.get_block(block.block_id).is_filled


class TestAssignmentPolicies:
    """Tests for color assignment."""

    @pytest.fixture
    def blocks(self):
        blocks = make_blocks(1, ["#FF0000", "#0000FF", "#0000FF", "#00FF00"])
        blocks[1].is_filled = True
        return blocks

    def test_color_counts_skip_filled(self, blocks):
        assert color_counts(blocks) == {"#FF0000": 1, "#0000FF": 1, "#00FF00": 1}

    def test_random_picks_unfilled(self, blocks):
        rng = random.Random(3)
        for _ in range(50):
            color = resolve_color(AssignmentPolicy.RANDOM, blocks, rng=rng)
            assert color in {"#FF0000", "#0000FF", "#00FF00"}

    def test_random_never_picks_fully_filled_color(self):
        blocks = make_blocks(1, ["#FF0000", "#0000FF"])
        blocks[0].is_filled = True
        rng = random.Random(0)
        assert {resolve_color(AssignmentPolicy.RANDOM, blocks, rng=rng) for _ in range(20)} == {"#0000FF"}

    def test_select_available(self, blocks):
        assert resolve_color(AssignmentPolicy.SELECT, blocks, "#00ff00") == "#00FF00"

    def test_select_unavailable(self):
        blocks = make_blocks(1, ["#FF0000"])
        blocks[0].is_filled = True
        with pytest.raises(ColorUnavailable):
            resolve_color(AssignmentPolicy.SELECT, blocks, "#FF0000")

    def test_select_requires_color(self, blocks):
        with pytest.raises(ValidationError):
            resolve_color(AssignmentPolicy.SELECT, blocks, None)

    def test_select_rejects_malformed_color(self, blocks):
        with pytest.raises(ValidationError):
            resolve_color(AssignmentPolicy.SELECT, blocks, "red")

    def test_recommend_most_unfilled(self):
        blocks = make_blocks(1, ["#FF0000", "#0000FF", "#0000FF", "#FF0000", "#0000FF"])
        assert resolve_color(AssignmentPolicy.RECOMMEND, blocks) == "#0000FF"

    def test_recommend_tie_first_seen(self):
        blocks = make_blocks(1, ["#FF0000", "#0000FF", "#0000FF", "#FF0000"])
        assert resolve_color(AssignmentPolicy.RECOMMEND, blocks) == "#FF0000"

    @pytest.mark.parametrize("total,current,owed", [(16, 0, 16), (16, 1, 8), (16, 2, 5), (16, 16, 0)])
    def test_blocks_owed(self, total, current, owed):
        assert blocks_owed(total, current) == owed
