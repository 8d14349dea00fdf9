"""
Bus Pass Backend — Pass Catalog Service Tests
=============================================

What we test:
    ✅ Create, list (all / active only, price order), get
    ✅ Case-insensitive duplicate names on create and on rename
    ✅ Renaming a pass type to its own name (different case) is allowed
    ✅ Partial update leaves unspecified fields untouched
    ✅ Missing pass type raises NotFoundError
    ✅ The lower(name) unique index rejects duplicates the check never saw
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from buspass.exceptions import ConflictError, NotFoundError
from buspass.models.pass_type import PassType
from buspass.schemas.catalog import PassTypeCreate, PassTypeUpdate
from buspass.services.catalog_service import CatalogService


class TestCreatePassType:

    def setup_method(self):
        self.service = CatalogService()

    @pytest.mark.asyncio
    async def test_create_records_audit_fields(self, db_session, users):
        data = PassTypeCreate(
            name="  Student Monthly ",
            description="Discounted",
            price=Decimal("400"),
            duration_days=30,
            per_day_limit=4,
        )
        created = await self.service.create_pass_type(db_session, data, admin_id=users.admin.id)

        assert created.name == "Student Monthly"
        assert created.price == Decimal("400")
        assert created.per_day_limit == 4
        assert created.is_active is True

        row = await db_session.get(PassType, created.id)
        assert row.created_by == users.admin.id
        assert row.updated_by == users.admin.id

    @pytest.mark.asyncio
    async def test_default_daily_limit_is_two(self, db_session):
        created = await self.service.create_pass_type(
            db_session, PassTypeCreate(name="Daily", price=Decimal("20"), duration_days=1)
        )
        assert created.per_day_limit == 2

    @pytest.mark.asyncio
    async def test_duplicate_name_any_case_conflicts(self, db_session, pass_types):
        with pytest.raises(ConflictError, match="already exists"):
            await self.service.create_pass_type(
                db_session,
                PassTypeCreate(name="wEEKLY", price=Decimal("10"), duration_days=7),
            )

    @pytest.mark.asyncio
    async def test_lower_name_index_backs_the_check(self, db_session, pass_types):
        db_session.add(PassType(name="MONTHLY", price=Decimal("1"), duration_days=1))
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()


class TestUpdatePassType:

    def setup_method(self):
        self.service = CatalogService()

    @pytest.mark.asyncio
    async def test_partial_update(self, db_session, pass_types, users):
        updated = await self.service.update_pass_type(
            db_session,
            pass_types.weekly.id,
            PassTypeUpdate(price=Decimal("199.50")),
            admin_id=users.admin.id,
        )
        assert updated.price == Decimal("199.50")
        assert updated.name == "Weekly"
        assert updated.duration_days == 7
        assert updated.per_day_limit == 3

    @pytest.mark.asyncio
    async def test_rename_onto_other_name_conflicts(self, db_session, pass_types):
        with pytest.raises(ConflictError):
            await self.service.update_pass_type(
                db_session, pass_types.weekly.id, PassTypeUpdate(name="monthly")
            )
        unchanged = await self.service.get_pass_type(db_session, pass_types.weekly.id)
        assert unchanged.name == "Weekly"

    @pytest.mark.asyncio
    async def test_rename_self_with_new_case_allowed(self, db_session, pass_types):
        updated = await self.service.update_pass_type(
            db_session, pass_types.weekly.id, PassTypeUpdate(name="WEEKLY")
        )
        assert updated.name == "WEEKLY"

    @pytest.mark.asyncio
    async def test_deactivate(self, db_session, pass_types):
        updated = await self.service.update_pass_type(
            db_session, pass_types.monthly.id, PassTypeUpdate(is_active=False)
        )
        assert updated.is_active is False

    @pytest.mark.asyncio
    async def test_missing_pass_type(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.update_pass_type(
                db_session, uuid.uuid4(), PassTypeUpdate(price=Decimal("1"))
            )


class TestListPassTypes:

    def setup_method(self):
        self.service = CatalogService()

    @pytest.mark.asyncio
    async def test_all_ordered_by_price(self, db_session, pass_types):
        names = [p.name for p in await self.service.list_pass_types(db_session)]
        assert names == ["Retired", "Weekly", "Monthly", "Quarterly"]

    @pytest.mark.asyncio
    async def test_active_only_hides_inactive(self, db_session, pass_types):
        names = [p.name for p in await self.service.list_pass_types(db_session, active_only=True)]
        assert "Retired" not in names
        assert len(names) == 3

    @pytest.mark.asyncio
    async def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError, match="pass type"):
            await self.service.get_pass_type(db_session, uuid.uuid4())
