"""
RecipeBox Backend — User Service Tests
=======================================

What we test:
    ✅ Profile with recipe count; unknown username → NotFoundError
    ✅ Recipe pages are newest first with correct total/has_more
    ✅ page and limit are normalized and clamped
    ✅ File pages re-sign links that are about to expire
"""

from datetime import timedelta

import pytest

from recipebox.config import settings
from recipebox.database import utcnow
from recipebox.exceptions import NotFoundError
from recipebox.models.file import StoredFile
from recipebox.services.recipe_service import recipe_service
from recipebox.services.user_service import UserService, normalize_page


async def create_recipes(db, user, count):
    for n in range(1, count + 1):
        await recipe_service.create_recipe(db, user_id=user.id, name=f"Recipe {n}")


class TestNormalizePage:

    def test_defaults(self):
        assert normalize_page(None, None) == (1, settings.default_page_size)

    def test_page_below_one_is_first_page(self):
        assert normalize_page(0, 5) == (1, 5)
        assert normalize_page(-3, 5) == (1, 5)

    def test_limit_clamped(self):
        assert normalize_page(1, 0) == (1, 1)
        assert normalize_page(1, 10_000) == (1, settings.max_page_size)


class TestUserProfile:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_profile_counts_recipes(self, db_session, user, recipe):
        profile = await self.service.get_user(db_session, "alice")

        assert profile.id == user.id
        assert profile.username == "alice"
        assert profile.recipe_count == 1

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_user(db_session, "nobody")

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, db_session, user):
        assert (await self.service.get_user_by_id(db_session, user.id)).username == "alice"

        with pytest.raises(NotFoundError):
            await self.service.get_user_by_id(db_session, 999)


class TestUserRecipes:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_pages_newest_first(self, db_session, user):
        await create_recipes(db_session, user, 5)

        first = await self.service.get_user_recipes(db_session, "alice", page=1, limit=2)
        last = await self.service.get_user_recipes(db_session, "alice", page=3, limit=2)

        assert [r.name for r in first.items] == ["Recipe 5", "Recipe 4"]
        assert first.total_count == 5
        assert first.has_more is True
        assert [r.name for r in last.items] == ["Recipe 1"]
        assert last.has_more is False

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db_session, user):
        await create_recipes(db_session, user, 2)

        page = await self.service.get_user_recipes(db_session, "alice", page=9, limit=2)

        assert page.items == []
        assert page.total_count == 2
        assert page.has_more is False

    @pytest.mark.asyncio
    async def test_only_that_users_recipes(self, db_session, user, other_user, recipe):
        page = await self.service.get_user_recipes(db_session, "bob")

        assert page.items == []
        assert page.total_count == 0

    @pytest.mark.asyncio
    async def test_items_include_children(self, db_session, recipe):
        page = await self.service.get_user_recipes(db_session, "alice")

        assert [i.step for i in page.items[0].instructions] == [1, 2, 3]
        assert len(page.items[0].ingredients) == 2

    @pytest.mark.asyncio
    async def test_limit_clamped_to_max(self, db_session, user, monkeypatch):
        monkeypatch.setattr(settings, "max_page_size", 2)
        await create_recipes(db_session, user, 3)

        page = await self.service.get_user_recipes(db_session, "alice", limit=50)

        assert page.limit == 2
        assert len(page.items) == 2

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_user_recipes(db_session, "nobody")


class TestUserFiles:

    @pytest.mark.asyncio
    async def test_stale_links_are_resigned(self, db_session, user):
        soon = utcnow() + timedelta(minutes=5)
        db_session.add(
            StoredFile(user_id=user.id, name="abc_pie.jpg", url="/stale", url_expiry=soon)
        )
        await db_session.commit()

        page = await UserService().get_user_files(db_session, "alice")

        assert page.total_count == 1
        assert page.items[0].name == "abc_pie.jpg"
        assert page.items[0].url.startswith("/api/file/content/abc_pie.jpg?expires=")

    @pytest.mark.asyncio
    async def test_fresh_links_untouched(self, db_session, user):
        later = utcnow() + timedelta(days=3)
        db_session.add(
            StoredFile(user_id=user.id, name="abc_pie.jpg", url="/still-good", url_expiry=later)
        )
        await db_session.commit()

        page = await UserService().get_user_files(db_session, "alice")

        assert page.items[0].url == "/still-good"
