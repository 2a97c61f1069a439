"""API Dependencies — authentication, team membership and client identity.

Invariants:
    - Team routes resolve the team through the caller's membership; a missing
      team and a non-member caller are indistinguishable (404)
    - Invalid bearer tokens on visitor routes are ignored, never rejected
"""

from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.errors import (
    AuthenticationError, ErrorContext, PapermarkError, ResourceNotFoundError,
)
from papermark.infrastructure.database import get_db
from papermark.infrastructure.security import decode_access_token
from papermark.models.user import Team, User, UserTeam

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None:
        raise AuthenticationError()
    user = await db.get(User, decode_access_token(credentials.credentials))
    if user is None:
        raise AuthenticationError("User no longer exists")
    return user


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> UUID | None:
    """Team members previewing their own links send a token; visitors do not."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except PapermarkError:
        return None


async def get_member_team(
    team_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Team:
    result = await db.execute(
        select(Team)
        .join(UserTeam, UserTeam.team_id == Team.id)
        .where(Team.id == team_id)
        .where(UserTeam.user_id == user.id),
    )
    team = result.scalar_one_or_none()
    if team is None:
        raise ResourceNotFoundError(
            "Team", str(team_id), ErrorContext(team_id=str(team_id)),
        )
    return team


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


async def get_team_resource(db: AsyncSession, model, resource_id: UUID, team: Team):
    """Row of `model` owned by `team`, or 404."""
    row = await db.get(model, resource_id)
    if row is None or row.team_id != team.id:
        raise ResourceNotFoundError(
            model.__name__, str(resource_id), ErrorContext(team_id=str(team.id)),
        )
    return row
