"""
Bus Pass Backend — Pass Catalog Service
=======================================

What:  Create, update and list pass types.
Who:   Admin catalog routes; the passenger pass-type list; seeding.

Name uniqueness:
    Checked case-insensitively inside the write transaction
    (lower(name) = lower(:name), excluding the record being updated). The
    functional unique index on lower(name) catches the race where two admins
    create "Weekly" and "weekly" at the same moment; atomic() turns that
    IntegrityError into the same ConflictError the pre-check raises.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.database import atomic
from buspass.exceptions import ConflictError, NotFoundError
from buspass.models.pass_type import PassType
from buspass.schemas.catalog import PassTypeCreate, PassTypeResponse, PassTypeUpdate

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "A pass type with this name already exists"


class CatalogService:
    """Stateless; every method receives the session it should use."""

    async def list_pass_types(
        self, db: AsyncSession, active_only: bool = False
    ) -> List[PassTypeResponse]:
        query = select(PassType).order_by(PassType.price.asc(), PassType.name.asc())
        if active_only:
            query = query.where(PassType.is_active.is_(True))
        result = await db.execute(query)
        return [PassTypeResponse.model_validate(p) for p in result.scalars().all()]

    async def get_pass_type(self, db: AsyncSession, pass_type_id: uuid.UUID) -> PassTypeResponse:
        pass_type = await db.get(PassType, pass_type_id)
        if pass_type is None:
            raise NotFoundError(resource="pass type", resource_id=str(pass_type_id))
        return PassTypeResponse.model_validate(pass_type)

    async def create_pass_type(
        self, db: AsyncSession, data: PassTypeCreate, admin_id: Optional[uuid.UUID] = None
    ) -> PassTypeResponse:
        async with atomic(db, conflict_message=DUPLICATE_NAME_MESSAGE):
            await self._ensure_name_available(db, data.name)
            pass_type = PassType(
                name=data.name,
                description=data.description,
                price=data.price,
                duration_days=data.duration_days,
                per_day_limit=data.per_day_limit,
                is_active=data.is_active,
                created_by=admin_id,
                updated_by=admin_id,
            )
            db.add(pass_type)
            await db.flush()

        logger.info("Pass type created: %s (%s)", pass_type.name, pass_type.id)
        return PassTypeResponse.model_validate(pass_type)

    async def update_pass_type(
        self,
        db: AsyncSession,
        pass_type_id: uuid.UUID,
        data: PassTypeUpdate,
        admin_id: Optional[uuid.UUID] = None,
    ) -> PassTypeResponse:
        """
        Partial update; only fields present in the request body change.

        Raises:
            NotFoundError: no pass type with this id
            ConflictError: the new name collides with another pass type
        """
        changes = data.model_dump(exclude_unset=True)

        async with atomic(db, conflict_message=DUPLICATE_NAME_MESSAGE):
            result = await db.execute(
                select(PassType).where(PassType.id == pass_type_id).with_for_update()
            )
            pass_type = result.scalar_one_or_none()
            if pass_type is None:
                raise NotFoundError(resource="pass type", resource_id=str(pass_type_id))

            if changes.get("name") is not None:
                await self._ensure_name_available(db, changes["name"], exclude_id=pass_type_id)

            for field, value in changes.items():
                if value is None and field != "description":
                    continue
                setattr(pass_type, field, value)
            pass_type.updated_by = admin_id
            await db.flush()

        logger.info("Pass type %s updated: %s", pass_type_id, sorted(changes))
        return PassTypeResponse.model_validate(pass_type)

    async def _ensure_name_available(
        self,
        db: AsyncSession,
        name: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(PassType.id).where(func.lower(PassType.name) == name.lower())
        if exclude_id is not None:
            query = query.where(PassType.id != exclude_id)
        existing = (await db.execute(query.limit(1))).scalar_one_or_none()
        if existing is not None:
            raise ConflictError(
                message=DUPLICATE_NAME_MESSAGE,
                context={"name": name, "existing_id": str(existing)},
            )


catalog_service = CatalogService()
