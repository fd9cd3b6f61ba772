"""
RecipeBox Backend — API Integration Tests
==========================================

What:  End-to-end HTTP tests through the full middleware and handler stack.
How:   HTTPX AsyncClient over ASGITransport; the request session is bound
       to the per-test in-memory database (see conftest.test_client).

What we test:
    ✅ Register → login cookie → session check → logout
    ✅ Owner-only routes: 401 without a session, 403 for another user
    ✅ Error envelope shape and status mapping (404, 409, 422, 503)
    ✅ Recipe editing flow including instruction swap and tags
    ✅ Paginated user recipes with X-Total-Count
    ✅ File upload and signed download
    ✅ Health check and request ID propagation
"""

import pytest

from recipebox.config import settings
from recipebox.exceptions import OperationTimeoutError
from recipebox.services.recipe_service import recipe_service

PANCAKES = {
    "name": "Pancakes",
    "description": "Fluffy",
    "ingredients": [{"name": "flour", "quantity": "200", "unit": "g"}],
    "instructions": [{"contents": "Mix"}, {"contents": "Fry"}],
}


class TestAuthFlow:

    @pytest.mark.asyncio
    async def test_register_login_logout(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "carol", "password": "pa55word", "passwordConfirm": "pa55word"},
        )
        assert response.status_code == 201
        assert response.json()["username"] == "carol"
        assert "password_hash" not in response.json()

        response = await test_client.post(
            "/api/auth/login", json={"username": "carol", "password": "pa55word"}
        )
        assert response.status_code == 200
        token = response.cookies.get(settings.session_cookie_name)
        assert token
        set_cookie = response.headers["set-cookie"].lower()
        assert "httponly" in set_cookie
        assert "samesite=lax" in set_cookie

        test_client.cookies.clear()
        test_client.cookies.set(settings.session_cookie_name, token)
        response = await test_client.get("/api/auth/session")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

        response = await test_client.post("/api/auth/logout")
        assert response.status_code == 204

        test_client.cookies.clear()
        test_client.cookies.set(settings.session_cookie_name, token)
        response = await test_client.get("/api/auth/session")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_register_mismatch_is_422(self, test_client):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "carol", "password": "pa55word", "passwordConfirm": "nope"},
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "passwordConfirm"

    @pytest.mark.asyncio
    async def test_register_taken_username_is_409(self, test_client, user):
        response = await test_client.post(
            "/api/auth/register",
            json={"username": "alice", "password": "pa55word", "passwordConfirm": "pa55word"},
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_bad_login_is_401(self, test_client, user):
        response = await test_client.post(
            "/api/auth/login", json={"username": "alice", "password": "wrong"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"
        assert settings.session_cookie_name not in response.cookies

    @pytest.mark.asyncio
    async def test_expired_session_is_401(self, test_client, user, make_login_session):
        record = await make_login_session(user, expired=True)
        test_client.cookies.set(settings.session_cookie_name, record.token)

        response = await test_client.get("/api/auth/session")

        assert response.status_code == 401
        assert response.json()["message"] == "Session expired"


class TestRecipeRoutes:

    @pytest.mark.asyncio
    async def test_create_requires_login(self, test_client):
        response = await test_client.post("/api/recipe", json=PANCAKES)

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_edit_flow(self, test_client, user, login_as):
        await login_as(user)

        response = await test_client.post("/api/recipe", json=PANCAKES)
        assert response.status_code == 201
        recipe = response.json()
        rid = recipe["id"]
        assert recipe["user_id"] == user.id
        assert [i["step"] for i in recipe["instructions"]] == [1, 2]

        response = await test_client.post(
            f"/api/recipe/{rid}/ingredient", json={"name": "milk", "quantity": "1", "unit": "cup"}
        )
        assert response.status_code == 201
        assert [i["name"] for i in response.json()["ingredients"]] == ["flour", "milk"]

        response = await test_client.post(f"/api/recipe/{rid}/instruction", json={"contents": "Serve"})
        assert response.status_code == 201
        mix, fry, serve = response.json()["instructions"]
        assert serve["step"] == 3

        response = await test_client.patch(f"/api/recipe/{rid}/instruction/{mix['id']}/{serve['id']}")
        assert response.status_code == 200
        assert [i["contents"] for i in response.json()["instructions"]] == ["Serve", "Fry", "Mix"]

        response = await test_client.patch(f"/api/recipe/{rid}", json={"description": "Thin"})
        assert response.status_code == 200
        assert response.json()["name"] == "Pancakes"
        assert response.json()["description"] == "Thin"

        response = await test_client.post("/api/tag", json={"tag": "breakfast"})
        assert response.status_code == 201
        tag_id = response.json()["id"]

        response = await test_client.patch(f"/api/recipe/{rid}/tag/{tag_id}")
        assert response.status_code == 200
        assert response.json()["tags"] == [{"id": tag_id, "tag": "breakfast"}]

        response = await test_client.get("/api/tag")
        assert response.json()[0]["recipes"][0]["id"] == rid

        response = await test_client.patch(f"/api/recipe/{rid}/tag/{tag_id}")
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

        response = await test_client.delete(f"/api/recipe/{rid}/tag/{tag_id}")
        assert response.status_code == 204

        response = await test_client.delete(f"/api/recipe/{rid}/instruction/{fry['id']}")
        assert response.status_code == 204

        response = await test_client.get(f"/api/recipe/{rid}")
        assert response.status_code == 200
        assert [i["step"] for i in response.json()["instructions"]] == [1, 3]
        assert response.json()["tags"] == []

        response = await test_client.delete(f"/api/recipe/{rid}")
        assert response.status_code == 204
        response = await test_client.get(f"/api/recipe/{rid}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_user_gets_403(self, test_client, user, other_user, recipe, login_as):
        await login_as(other_user)

        response = await test_client.patch(f"/api/recipe/{recipe.id}", json={"name": "Mine now"})

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "forbidden"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_reading_is_public(self, test_client, recipe):
        response = await test_client.get(f"/api/recipe/{recipe.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Pancakes"

    @pytest.mark.asyncio
    async def test_missing_recipe_404_envelope(self, test_client):
        response = await test_client.get("/api/recipe/999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["details"]["resource"] == "recipe"

    @pytest.mark.asyncio
    async def test_child_of_other_recipe_is_409(self, test_client, user, recipe, login_as):
        await login_as(user)
        other = (await test_client.post("/api/recipe", json=PANCAKES)).json()
        foreign = other["ingredients"][0]["id"]

        response = await test_client.delete(f"/api/recipe/{recipe.id}/ingredient/{foreign}")

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_swap_with_itself_is_422(self, test_client, user, recipe, login_as):
        await login_as(user)
        iid = recipe.instructions[0].id

        response = await test_client.patch(f"/api/recipe/{recipe.id}/instruction/{iid}/{iid}")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_non_integer_id_is_422(self, test_client):
        response = await test_client.get("/api/recipe/abc")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_timeout_is_503_with_retry_after(
        self, test_client, user, recipe, login_as, monkeypatch
    ):
        await login_as(user)

        async def timed_out(*args, **kwargs):
            raise OperationTimeoutError(operation="update_recipe", timeout=5.0)

        monkeypatch.setattr(recipe_service, "update_recipe", timed_out)

        response = await test_client.patch(f"/api/recipe/{recipe.id}", json={"name": "x"})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["details"]["operation"] == "update_recipe"


class TestTagRoutes:

    @pytest.mark.asyncio
    async def test_create_requires_login(self, test_client):
        response = await test_client.post("/api/tag", json={"tag": "vegan"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_delete_missing_tag_is_404(self, test_client, user, login_as):
        await login_as(user)

        response = await test_client.delete("/api/tag/999")

        assert response.status_code == 404


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_profile(self, test_client, recipe):
        response = await test_client.get("/api/user/alice")

        assert response.status_code == 200
        assert response.json()["recipe_count"] == 1

    @pytest.mark.asyncio
    async def test_recipe_pages(self, test_client, user, login_as):
        await login_as(user)
        for n in range(3):
            await test_client.post("/api/recipe", json={"name": f"Recipe {n}"})

        response = await test_client.get("/api/user/alice/recipes", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "3"
        body = response.json()
        assert [r["name"] for r in body["items"]] == ["Recipe 2", "Recipe 1"]
        assert body["has_more"] is True

    @pytest.mark.asyncio
    async def test_unknown_user_is_404(self, test_client):
        response = await test_client.get("/api/user/nobody/recipes")

        assert response.status_code == 404


class TestFileRoutes:

    @pytest.mark.asyncio
    async def test_upload_and_download(self, test_client, user, login_as):
        await login_as(user)

        response = await test_client.post(
            "/api/file", files={"file": ("pie.txt", b"apple pie", "text/plain")}
        )
        assert response.status_code == 201
        uploaded = response.json()
        assert uploaded["name"].endswith("_pie.txt")

        response = await test_client.get(f"/api/file/{uploaded['id']}")
        assert response.status_code == 200
        assert response.json()["url"] == uploaded["url"]

        response = await test_client.get(uploaded["url"])
        assert response.status_code == 200
        assert response.content == b"apple pie"

        response = await test_client.get("/api/user/alice/files")
        assert response.headers["X-Total-Count"] == "1"
        assert response.json()["items"][0]["id"] == uploaded["id"]

    @pytest.mark.asyncio
    async def test_tampered_link_is_403(self, test_client, user, login_as):
        await login_as(user)
        uploaded = (
            await test_client.post("/api/file", files={"file": ("pie.txt", b"pie", "text/plain")})
        ).json()

        response = await test_client.get(uploaded["url"].replace("signature=", "signature=00"))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_upload_requires_login(self, test_client):
        response = await test_client.post(
            "/api/file", files={"file": ("pie.txt", b"pie", "text/plain")}
        )

        assert response.status_code == 401


class TestHealthAndMiddleware:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
