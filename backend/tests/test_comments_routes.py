"""
Posts API Backend: Comment Endpoint Tests
==========================================

What:  End-to-end tests for /comments through the ASGI app.
How:   Same harness as the post endpoint tests. Only creation needs a token.
"""

import pytest

ALICE = {"Authorization": "Bearer alice-token"}

NEW_COMMENT = {"content": "nice post", "creationDate": "2024-01-02", "upvote": True}


async def create_comment(client, **fields):
    response = await client.post("/comments", json={**NEW_COMMENT, **fields}, headers=ALICE)
    assert response.status_code == 201, response.text
    return response.json()


class TestCommentLifecycle:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client):
        created = await create_comment(test_client)

        assert created["content"] == "nice post"
        assert created["upvote"] is True
        assert created["self"] == f"http://test/comments/{created['id']}"

        response = await test_client.get(f"/comments/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    async def test_create_requires_token(self, test_client, store):
        response = await test_client.post("/comments", json=NEW_COMMENT)

        assert response.status_code == 401
        assert store.count("Comments") == 0

    @pytest.mark.asyncio
    async def test_create_missing_upvote_is_400(self, test_client, store):
        payload = {"content": "nice post", "creationDate": "2024-01-02"}

        response = await test_client.post("/comments", json=payload, headers=ALICE)

        assert response.status_code == 400
        assert store.count("Comments") == 0

    @pytest.mark.asyncio
    async def test_put_and_patch(self, test_client):
        created = await create_comment(test_client)

        put = await test_client.put(
            f"/comments/{created['id']}",
            json={"content": "edited", "creationDate": "2024-01-03", "upvote": False},
        )
        assert put.status_code == 200
        assert put.json()["upvote"] is False

        patch = await test_client.patch(f"/comments/{created['id']}", json={"upvote": True})
        assert patch.status_code == 200
        assert patch.json()["content"] == "edited"
        assert patch.json()["upvote"] is True

    @pytest.mark.asyncio
    async def test_put_missing_attribute_is_400(self, test_client):
        created = await create_comment(test_client)

        response = await test_client.put(f"/comments/{created['id']}", json={"content": "x"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_comment_is_404(self, test_client):
        for response in (
            await test_client.get("/comments/404"),
            await test_client.put("/comments/404", json=NEW_COMMENT),
            await test_client.patch("/comments/404", json={"upvote": False}),
            await test_client.delete("/comments/404"),
        ):
            assert response.status_code == 404
            assert response.json() == {"Error": "No comment with this comment_id exists"}

    @pytest.mark.asyncio
    async def test_delete_twice(self, test_client):
        created = await create_comment(test_client)

        assert (await test_client.delete(f"/comments/{created['id']}")).status_code == 204
        assert (await test_client.delete(f"/comments/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_bulk_delete_is_405(self, test_client):
        response = await test_client.delete("/comments")

        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"


class TestListComments:

    @pytest.mark.asyncio
    async def test_paginates_by_five(self, test_client):
        for i in range(6):
            await create_comment(test_client, content=f"comment {i}")

        first = (await test_client.get("/comments")).json()
        assert len(first["comments"]) == 5
        assert first["total_items"] == 6
        assert first["next"].startswith("http://test/comments?cursor=")

        second = (await test_client.get(first["next"])).json()
        assert len(second["comments"]) == 1
        assert "next" not in second

    @pytest.mark.asyncio
    async def test_listing_is_open(self, test_client):
        await create_comment(test_client)

        response = await test_client.get("/comments")

        assert response.status_code == 200
        assert len(response.json()["comments"]) == 1
