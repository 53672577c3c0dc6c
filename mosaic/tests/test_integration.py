"""
Integration tests - End-to-end workflow tests.

Tests the complete flow:
1. Owner creates a 16-block canvas from a solid red source
2. A participant joins and fills every block with red photos
3. Owner completes the canvas and publishes it
4. The post appears in the feed; publishing again conflicts
"""

import pytest
from fastapi.testclient import TestClient

from ..api.app import create_app
from ..api.service import APIService


@pytest.fixture
def client(store, fetcher, manager, feed):
    return TestClient(create_app(APIService(store=store, fetcher=fetcher, manager=manager, feed=feed)))


OWNER = {"X-User-Id": "1"}
PLAYER = {"X-User-Id": "2"}


class TestFullMosaicFlow:
    """Tests for the complete canvas lifecycle over HTTP."""

    def test_create_fill_complete_publish(self, client):
        created = client.post(
            "/api/v1/canvases",
            json={"source_image_url": "source/red.png", "block_count": 16, "title": "All red"},
            headers=OWNER,
        )
        assert created.status_code == 201
        canvas = created.json()

        grid = client.get(f"/api/v1/canvases/{canvas['canvas_id']}").json()["blocks"]
        assert len(grid) == 16
        assert {b["hex_color"] for b in grid} == {"#FF0000"}

        joined = client.post(
            "/api/v1/canvases/join",
            json={"room_code": canvas["room_code"], "assignment_type": "random"},
            headers=PLAYER,
        ).json()
        assert joined["block_color"] == "#FF0000"
        assert joined["assigned_blocks"] == 16

        # Photo of the wrong color is refused and leaves the grid untouched
        mismatch = client.post(
            "/api/v1/photos",
            json={"canvas_id": canvas["canvas_id"], "block_id": grid[0]["block_id"], "photo_url": "photo/blue.png"},
            headers=PLAYER,
        )
        assert mismatch.status_code == 422

        for block in grid:
            response = client.post(
                "/api/v1/photos",
                json={"canvas_id": canvas["canvas_id"], "block_id": block["block_id"], "photo_url": "photo/red.png"},
                headers=PLAYER,
            )
            assert response.status_code == 201
            assert response.json()["auto_accepted"]

        mine = client.get("/api/v1/canvases/mine", headers=PLAYER).json()["canvases"]
        assert mine[0]["progress"] == 100

        completed = client.post(f"/api/v1/canvases/{canvas['canvas_id']}/complete", headers=OWNER)
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"

        # Completed canvases leave the public listing and refuse new joins
        assert client.get("/api/v1/canvases/public").json()["canvases"] == []
        late = client.post("/api/v1/canvases/join", json={"room_code": canvas["room_code"]}, headers={"X-User-Id": "3"})
        assert late.status_code == 409
        assert late.json()["error_code"] == "CLOSED"

        published = client.post("/api/v1/feed", json={"canvas_id": canvas["canvas_id"]}, headers=OWNER)
        assert published.status_code == 201
        post = published.json()
        assert post["final_image_url"] == "photo/red.png"

        feed = client.get("/api/v1/feed").json()
        assert [p["entry_id"] for p in feed["posts"]] == [post["entry_id"]]
        assert client.get(f"/api/v1/feed/{post['entry_id']}").json() == post
        assert client.get("/api/v1/feed/mine", headers=OWNER).json()["posts"] == [post]

        gallery = client.get("/api/v1/gallery", headers=PLAYER).json()
        assert gallery["count"] == 16

        again = client.post("/api/v1/feed", json={"canvas_id": canvas["canvas_id"]}, headers=OWNER)
        assert again.status_code == 409
        assert again.json()["error_code"] == "ALREADY_PUBLISHED"

    def test_manual_review_flow(self, client):
        canvas = client.post(
            "/api/v1/canvases", json={"source_image_url": "source/red.png"}, headers=OWNER
        ).json()
        client.post("/api/v1/canvases/join", json={"room_code": canvas["room_code"]}, headers=PLAYER)
        grid = client.get(f"/api/v1/canvases/{canvas['canvas_id']}").json()["blocks"]

        photo_ids = []
        for block in grid:
            response = client.post(
                "/api/v1/photos",
                json={
                    "canvas_id": canvas["canvas_id"],
                    "block_id": block["block_id"],
                    "photo_url": "photo/green.png",
                    "auto_validate": False,
                },
                headers=PLAYER,
            )
            assert response.json()["status"] == "pending"
            photo_ids.append(response.json()["photo_id"])

        # Pending photos do not count toward completion
        blocked = client.post(f"/api/v1/canvases/{canvas['canvas_id']}/complete", headers=OWNER)
        assert blocked.json()["error_code"] == "INCOMPLETE_BLOCKS"

        # Only the owner reviews
        assert client.post(f"/api/v1/photos/{photo_ids[0]}/accept", headers=PLAYER).status_code == 403

        for photo_id in photo_ids:
            assert client.post(f"/api/v1/photos/{photo_id}/accept", headers=OWNER).status_code == 200

        completed = client.post(f"/api/v1/canvases/{canvas['canvas_id']}/complete", headers=OWNER)
        assert completed.json()["status"] == "COMPLETED"

        published = client.post("/api/v1/feed", json={"canvas_id": canvas["canvas_id"]}, headers=OWNER)
        assert published.json()["final_image_url"] == "photo/green.png"
