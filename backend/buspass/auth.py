"""
Bus Pass Backend — Caller Identity
==================================

What:  FastAPI dependencies that turn gateway headers into an Identity and
       gate routers by role.
How:   The upstream gateway authenticates the user and forwards
       `X-User-Id` (UUID) and `X-User-Role` (ADMIN | PASSENGER | CONDUCTOR).
       This service trusts those headers; it never sees passwords or tokens.

Failure modes:
    header missing / not a UUID / unknown role  → AuthenticationError (401)
    valid identity, role not admitted           → ForbiddenError (403)

Usage:
    router = APIRouter(dependencies=[Depends(require_role(UserRole.ADMIN))])

    @router.get("/x")
    async def handler(identity: Identity = Depends(get_identity)): ...
"""

import uuid
from typing import Callable, Optional

from fastapi import Depends, Header
from pydantic import BaseModel

from buspass.exceptions import AuthenticationError, ForbiddenError
from buspass.models.enums import UserRole


class Identity(BaseModel):
    user_id: uuid.UUID
    role: UserRole


async def get_identity(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> Identity:
    if not x_user_id or not x_user_role:
        raise AuthenticationError()
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise AuthenticationError(message="X-User-Id is not a valid user id")
    try:
        role = UserRole(x_user_role.strip().upper())
    except ValueError:
        raise AuthenticationError(
            message="X-User-Role is not a recognized role",
            context={"allowed": [r.value for r in UserRole]},
        )
    return Identity(user_id=user_id, role=role)


def require_role(*roles: UserRole) -> Callable:
    """Dependency factory; the returned dependency yields the Identity when admitted."""
    allowed = set(roles)

    async def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role not in allowed:
            raise ForbiddenError(
                message="Your role cannot access this endpoint",
                context={"role": identity.role.value},
            )
        return identity

    return dependency
