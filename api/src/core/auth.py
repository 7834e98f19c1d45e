"""
Request authentication for the API.

Every route acts inside the organization named by the caller's token:
get_execution_context pairs the token's user and org_id with the request
session. Users are not looked up in the database.
"""

import logging
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import DbSession
from src.core.security import TOKEN_TYPE, decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class UserPrincipal:
    """Caller identity taken from token claims."""
    user_id: UUID
    email: str
    organization_id: UUID
    name: str = ""


@dataclass
class ExecutionContext:
    user: UserPrincipal
    org_id: UUID
    db: AsyncSession


def _claim_uuid(payload: dict, claim: str) -> UUID | None:
    value = payload.get(claim)
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


async def get_current_user_optional(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> UserPrincipal | None:
    """
    Resolve the caller from a bearer header or, failing that, the
    access_token cookie. None when there is no usable token.
    """
    if credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get("access_token")

    if not token:
        return None

    payload = decode_token(token, expected_type=TOKEN_TYPE)
    if payload is None:
        return None

    user_id = _claim_uuid(payload, "sub")
    if user_id is None:
        return None

    org_id = _claim_uuid(payload, "org_id")
    if org_id is None:
        logger.warning(f"Token for user {user_id} has no usable org_id claim")
        return None

    return UserPrincipal(
        user_id=user_id,
        email=payload.get("email", ""),
        organization_id=org_id,
        name=payload.get("name", ""),
    )


async def get_current_user(
    user: Annotated[UserPrincipal | None, Depends(get_current_user_optional)],
) -> UserPrincipal:
    """Like get_current_user_optional, but answers 401 without a user."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


async def get_execution_context(
    user: Annotated[UserPrincipal, Depends(get_current_user)],
    db: DbSession,
) -> ExecutionContext:
    return ExecutionContext(user=user, org_id=user.organization_id, db=db)


CurrentUser = Annotated[UserPrincipal, Depends(get_current_user)]
Context = Annotated[ExecutionContext, Depends(get_execution_context)]
