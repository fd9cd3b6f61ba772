"""
RecipeBox Backend — Tag Service Tests
======================================

What we test:
    ✅ Labels are trimmed and must be unique, even when a concurrent insert
       wins the race between the duplicate check and the INSERT
    ✅ list_tags is alphabetical and embeds linked recipes, also from a
       fresh session that never saw the link being made
    ✅ delete_tag unlinks the tag from recipes before deleting it
"""

import pytest
from sqlalchemy import event, insert

from recipebox.exceptions import ConflictError, NotFoundError, ValidationError
from recipebox.models.recipe import Tag
from recipebox.services.recipe_service import recipe_service
from recipebox.services.tag_service import TagService


class TestTagService:

    def setup_method(self):
        self.service = TagService()

    @pytest.mark.asyncio
    async def test_create_trims_label(self, db_session):
        tag = await self.service.create_tag(db_session, "  vegan ")

        assert tag.tag == "vegan"
        assert tag.recipes == []

    @pytest.mark.asyncio
    async def test_blank_label_rejected(self, db_session):
        with pytest.raises(ValidationError):
            await self.service.create_tag(db_session, "   ")

    @pytest.mark.asyncio
    async def test_duplicate_label_conflicts(self, db_session):
        await self.service.create_tag(db_session, "vegan")

        with pytest.raises(ConflictError):
            await self.service.create_tag(db_session, "vegan ")

    @pytest.mark.asyncio
    async def test_label_inserted_concurrently_conflicts(self, db_session):
        def insert_same_label(session, flush_context, instances):
            session.connection().execute(insert(Tag.__table__).values(tag="vegan"))

        event.listen(db_session.sync_session, "before_flush", insert_same_label)
        try:
            with pytest.raises(ConflictError) as exc_info:
                await self.service.create_tag(db_session, "vegan")
        finally:
            event.remove(db_session.sync_session, "before_flush", insert_same_label)

        assert exc_info.value.context == {"tag": "vegan"}

    @pytest.mark.asyncio
    async def test_list_sorted_with_recipes(self, db_session, user, recipe):
        quick = await self.service.create_tag(db_session, "quick")
        await self.service.create_tag(db_session, "dinner")
        await recipe_service.add_tag(db_session, user.id, recipe.id, quick.id)

        tags = await self.service.list_tags(db_session)

        assert [t.tag for t in tags] == ["dinner", "quick"]
        assert tags[0].recipes == []
        assert tags[1].recipes[0].name == "Pancakes"
        assert [t.tag for t in tags[1].recipes[0].tags] == ["quick"]

    @pytest.mark.asyncio
    async def test_delete_unlinks_recipes(self, db_session, user, recipe):
        tag = await self.service.create_tag(db_session, "quick")
        await recipe_service.add_tag(db_session, user.id, recipe.id, tag.id)

        await self.service.delete_tag(db_session, tag.id)

        assert await self.service.list_tags(db_session) == []
        assert (await recipe_service.get_recipe(db_session, recipe.id)).tags == []

    @pytest.mark.asyncio
    async def test_delete_missing_tag(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.delete_tag(db_session, 42)

    @pytest.mark.asyncio
    async def test_list_in_fresh_sessions(self, session_factory, user, recipe):
        user_id = user.id
        async with session_factory() as db:
            tag = await self.service.create_tag(db, "quick")
        async with session_factory() as db:
            await recipe_service.add_tag(db, user_id, recipe.id, tag.id)

        async with session_factory() as db:
            tags = await self.service.list_tags(db)

        assert [r.id for r in tags[0].recipes] == [recipe.id]
        assert [t.tag for t in tags[0].recipes[0].tags] == ["quick"]
