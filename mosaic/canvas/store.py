"""
Canvas Store - transactional persistence collaborator.

The engine consumes persistence through the CanvasStore interface:
- Key-addressed create/read/update/delete per entity
- Uniqueness constraints on room code, (canvas, user) participation
  and one feed entry per canvas, reported as UniqueViolation
- Atomic multi-row transactions via transaction()

InMemoryCanvasStore is the bundled implementation. Transactions are
serialized with a re-entrant lock; the outermost transaction snapshots
every table and restores it if the block raises. Reads hand out deep
copies, so callers must write changes back with update_*().
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import replace
from typing import Iterator, TypeVar
import threading

from .models import Canvas, Block, Participation, Photo, FeedEntry, GalleryEntry

T = TypeVar("T")


class UniqueViolation(Exception):
    """A uniqueness constraint rejected an insert."""

    def __init__(self, constraint: str, value: object):
        super().__init__(f"Unique constraint {constraint} violated by {value!r}")
        self.constraint = constraint
        self.value = value


class CanvasStore(ABC):
    """Abstract transactional store for canvas entities."""

    @abstractmethod
    def transaction(self):
        """Context manager; all store calls inside commit or roll back together."""
        pass

    # Canvas
    @abstractmethod
    def insert_canvas(self, canvas: Canvas) -> Canvas: ...

    @abstractmethod
    def get_canvas(self, canvas_id: int) -> Canvas | None: ...

    @abstractmethod
    def get_canvas_by_room_code(self, room_code: str) -> Canvas | None: ...

    @abstractmethod
    def update_canvas(self, canvas: Canvas) -> Canvas: ...

    @abstractmethod
    def delete_canvas(self, canvas_id: int) -> None: ...

    @abstractmethod
    def list_canvases(self) -> list[Canvas]: ...

    # Block
    @abstractmethod
    def insert_blocks(self, blocks: list[Block]) -> list[Block]: ...

    @abstractmethod
    def get_block(self, block_id: int) -> Block | None: ...

    @abstractmethod
    def blocks_for_canvas(self, canvas_id: int) -> list[Block]: ...

    @abstractmethod
    def update_block(self, block: Block) -> Block: ...

    # Participation
    @abstractmethod
    def insert_participation(self, participation: Participation) -> Participation: ...

    @abstractmethod
    def find_participation(self, canvas_id: int, user_id: int) -> Participation | None: ...

    @abstractmethod
    def participations_for_canvas(self, canvas_id: int) -> list[Participation]: ...

    @abstractmethod
    def participations_for_user(self, user_id: int) -> list[Participation]: ...

    # Photo
    @abstractmethod
    def insert_photo(self, photo: Photo) -> Photo: ...

    @abstractmethod
    def get_photo(self, photo_id: int) -> Photo | None: ...

    @abstractmethod
    def update_photo(self, photo: Photo) -> Photo: ...

    @abstractmethod
    def delete_photo(self, photo_id: int) -> None: ...

    @abstractmethod
    def photos_for_canvas(self, canvas_id: int) -> list[Photo]: ...

    @abstractmethod
    def photos_for_user(self, user_id: int) -> list[Photo]: ...

    # Feed
    @abstractmethod
    def insert_feed_entry(self, entry: FeedEntry) -> FeedEntry: ...

    @abstractmethod
    def get_feed_entry(self, entry_id: int) -> FeedEntry | None: ...

    @abstractmethod
    def feed_entry_for_canvas(self, canvas_id: int) -> FeedEntry | None: ...

    @abstractmethod
    def list_feed_entries(self) -> list[FeedEntry]: ...

    @abstractmethod
    def delete_feed_entry(self, entry_id: int) -> None: ...

    # Gallery
    @abstractmethod
    def insert_gallery_entry(self, entry: GalleryEntry) -> GalleryEntry: ...

    @abstractmethod
    def gallery_for_user(self, user_id: int) -> list[GalleryEntry]: ...


class InMemoryCanvasStore(CanvasStore):
    """
    Thread-safe in-memory store.

    Usage:
        store = InMemoryCanvasStore()
        with store.transaction():
            canvas = store.insert_canvas(canvas)
            store.insert_blocks(blocks)
    """

    _TABLES = ("canvases", "blocks", "participations", "photos", "feed", "gallery")

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._tables: dict[str, dict[int, object]] = {name: {} for name in self._TABLES}
        self._sequences: dict[str, int] = {name: 0 for name in self._TABLES}

    @contextmanager
    def transaction(self) -> Iterator[InMemoryCanvasStore]:
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                snapshot = (
                    {name: dict(rows) for name, rows in self._tables.items()},
                    dict(self._sequences),
                )
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._tables, self._sequences = snapshot
                raise
            finally:
                self._depth -= 1

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _next_id(self, table: str) -> int:
        self._sequences[table] += 1
        return self._sequences[table]

    def _get(self, table: str, key: int | None) -> object | None:
        with self._lock:
            row = self._tables[table].get(key)
            return deepcopy(row) if row is not None else None

    def _select(self, table: str, predicate) -> list:
        with self._lock:
            return [deepcopy(row) for row in self._tables[table].values() if predicate(row)]

    def _put(self, table: str, key: int, row: T) -> T:
        with self._lock:
            if key not in self._tables[table]:
                raise KeyError(f"{table} row {key} does not exist")
            self._tables[table][key] = deepcopy(row)
            return deepcopy(row)

    # -------------------------------------------------------------------------
    # Canvas
    # -------------------------------------------------------------------------

    def insert_canvas(self, canvas: Canvas) -> Canvas:
        with self.transaction():
            for existing in self._tables["canvases"].values():
                if existing.room_code == canvas.room_code:
                    raise UniqueViolation("canvas.room_code", canvas.room_code)
            row = replace(deepcopy(canvas), canvas_id=self._next_id("canvases"))
            self._tables["canvases"][row.canvas_id] = row
            return deepcopy(row)

    def get_canvas(self, canvas_id: int) -> Canvas | None:
        return self._get("canvases", canvas_id)

    def get_canvas_by_room_code(self, room_code: str) -> Canvas | None:
        matches = self._select("canvases", lambda c: c.room_code == room_code)
        return matches[0] if matches else None

    def update_canvas(self, canvas: Canvas) -> Canvas:
        return self._put("canvases", canvas.canvas_id, canvas)

    def delete_canvas(self, canvas_id: int) -> None:
        with self.transaction():
            self._tables["canvases"].pop(canvas_id, None)
            blocks = self._tables["blocks"]
            for block_id in [k for k, b in blocks.items() if b.canvas_id == canvas_id]:
                del blocks[block_id]

    def list_canvases(self) -> list[Canvas]:
        return self._select("canvases", lambda c: True)

    # -------------------------------------------------------------------------
    # Block
    # -------------------------------------------------------------------------

    def insert_blocks(self, blocks: list[Block]) -> list[Block]:
        with self.transaction():
            inserted = []
            for block in blocks:
                if block.canvas_id not in self._tables["canvases"]:
                    raise KeyError(f"canvas {block.canvas_id} does not exist")
                row = replace(deepcopy(block), block_id=self._next_id("blocks"))
                self._tables["blocks"][row.block_id] = row
                inserted.append(deepcopy(row))
            return inserted

    def get_block(self, block_id: int) -> Block | None:
        return self._get("blocks", block_id)

    def blocks_for_canvas(self, canvas_id: int) -> list[Block]:
        blocks = self._select("blocks", lambda b: b.canvas_id == canvas_id)
        return sorted(blocks, key=lambda b: b.order_index)

    def update_block(self, block: Block) -> Block:
        return self._put("blocks", block.block_id, block)

    # -------------------------------------------------------------------------
    # Participation
    # -------------------------------------------------------------------------

    def insert_participation(self, participation: Participation) -> Participation:
        with self.transaction():
            key = (participation.canvas_id, participation.user_id)
            for existing in self._tables["participations"].values():
                if (existing.canvas_id, existing.user_id) == key:
                    raise UniqueViolation("participation.canvas_user", key)
            row = replace(
                deepcopy(participation),
                participation_id=self._next_id("participations"),
            )
            self._tables["participations"][row.participation_id] = row
            return deepcopy(row)

    def find_participation(self, canvas_id: int, user_id: int) -> Participation | None:
        matches = self._select(
            "participations",
            lambda p: p.canvas_id == canvas_id and p.user_id == user_id,
        )
        return matches[0] if matches else None

    def participations_for_canvas(self, canvas_id: int) -> list[Participation]:
        return self._select("participations", lambda p: p.canvas_id == canvas_id)

    def participations_for_user(self, user_id: int) -> list[Participation]:
        return self._select("participations", lambda p: p.user_id == user_id)

    # -------------------------------------------------------------------------
    # Photo
    # -------------------------------------------------------------------------

    def insert_photo(self, photo: Photo) -> Photo:
        with self.transaction():
            row = replace(deepcopy(photo), photo_id=self._next_id("photos"))
            self._tables["photos"][row.photo_id] = row
            return deepcopy(row)

    def get_photo(self, photo_id: int) -> Photo | None:
        return self._get("photos", photo_id)

    def update_photo(self, photo: Photo) -> Photo:
        return self._put("photos", photo.photo_id, photo)

    def delete_photo(self, photo_id: int) -> None:
        with self._lock:
            self._tables["photos"].pop(photo_id, None)

    def photos_for_canvas(self, canvas_id: int) -> list[Photo]:
        return self._select("photos", lambda p: p.canvas_id == canvas_id)

    def photos_for_user(self, user_id: int) -> list[Photo]:
        return self._select("photos", lambda p: p.user_id == user_id)

    # -------------------------------------------------------------------------
    # Feed
    # -------------------------------------------------------------------------

    def insert_feed_entry(self, entry: FeedEntry) -> FeedEntry:
        with self.transaction():
            for existing in self._tables["feed"].values():
                if existing.canvas_id == entry.canvas_id:
                    raise UniqueViolation("feed.canvas_id", entry.canvas_id)
            row = replace(deepcopy(entry), entry_id=self._next_id("feed"))
            self._tables["feed"][row.entry_id] = row
            return deepcopy(row)

    def get_feed_entry(self, entry_id: int) -> FeedEntry | None:
        return self._get("feed", entry_id)

    def feed_entry_for_canvas(self, canvas_id: int) -> FeedEntry | None:
        matches = self._select("feed", lambda e: e.canvas_id == canvas_id)
        return matches[0] if matches else None

    def list_feed_entries(self) -> list[FeedEntry]:
        return self._select("feed", lambda e: True)

    def delete_feed_entry(self, entry_id: int) -> None:
        with self._lock:
            self._tables["feed"].pop(entry_id, None)

    # -------------------------------------------------------------------------
    # Gallery
    # -------------------------------------------------------------------------

    def insert_gallery_entry(self, entry: GalleryEntry) -> GalleryEntry:
        with self.transaction():
            row = replace(deepcopy(entry), entry_id=self._next_id("gallery"))
            self._tables["gallery"][row.entry_id] = row
            return deepcopy(row)

    def gallery_for_user(self, user_id: int) -> list[GalleryEntry]:
        return self._select("gallery", lambda e: e.user_id == user_id)
