"""
Bus Pass Backend — Seed Data
============================

What:  Creates the demo accounts and the default pass catalog.
How:   Idempotent: users are matched by email, pass types by name, and
       anything already present is left untouched.
When:  After `alembic upgrade head` on a fresh database:

    cd backend && python -m buspass.seed

Seeded:
    admin@bps.com       ADMIN
    conductor@bps.com   CONDUCTOR
    passenger@bps.com   PASSENGER
    Weekly     7 days    175.00   3 scans/day
    Monthly   30 days    750.00   5 scans/day
    Quarterly 90 days   2000.00  10 scans/day
"""

import asyncio
import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from buspass.database import async_session_factory, atomic, dispose_engine
from buspass.exceptions import ConflictError
from buspass.main import setup_logging
from buspass.models.enums import UserRole
from buspass.models.user import User
from buspass.schemas.catalog import PassTypeCreate
from buspass.services.catalog_service import catalog_service

logger = logging.getLogger("buspass.seed")

DEFAULT_USERS = [
    {"full_name": "System Admin", "email": "admin@bps.com", "role": UserRole.ADMIN},
    {"full_name": "Route Conductor", "email": "conductor@bps.com", "role": UserRole.CONDUCTOR},
    {"full_name": "Demo Passenger", "email": "passenger@bps.com", "role": UserRole.PASSENGER},
]

DEFAULT_PASS_TYPES = [
    PassTypeCreate(
        name="Weekly",
        description="Unlimited travel for 7 days, up to 3 scans per day",
        price=Decimal("175.00"),
        duration_days=7,
        per_day_limit=3,
    ),
    PassTypeCreate(
        name="Monthly",
        description="Unlimited travel for 30 days, up to 5 scans per day",
        price=Decimal("750.00"),
        duration_days=30,
        per_day_limit=5,
    ),
    PassTypeCreate(
        name="Quarterly",
        description="Unlimited travel for 90 days, up to 10 scans per day",
        price=Decimal("2000.00"),
        duration_days=90,
        per_day_limit=10,
    ),
]


async def seed_users(db: AsyncSession) -> dict:
    """Returns {email: User} for every default account."""
    users = {}
    async with atomic(db, conflict_message="Seed user already exists"):
        for entry in DEFAULT_USERS:
            user = (
                await db.execute(select(User).where(User.email == entry["email"]))
            ).scalar_one_or_none()
            if user is None:
                user = User(**entry)
                db.add(user)
                logger.info("Created user %s (%s)", entry["email"], entry["role"].value)
            else:
                logger.info("User %s already present", entry["email"])
            users[entry["email"]] = user
        await db.flush()
    return users


async def seed_pass_types(db: AsyncSession, admin_id=None) -> int:
    """Returns how many pass types were created."""
    created = 0
    for data in DEFAULT_PASS_TYPES:
        try:
            await catalog_service.create_pass_type(db, data, admin_id=admin_id)
            created += 1
        except ConflictError:
            logger.info("Pass type %s already present", data.name)
    return created


async def run() -> None:
    async with async_session_factory() as db:
        users = await seed_users(db)
        admin = users["admin@bps.com"]
        created = await seed_pass_types(db, admin_id=admin.id)
    logger.info("Seeding complete: %d users, %d new pass types", len(users), created)
    await dispose_engine()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run())
