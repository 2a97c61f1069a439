"""Team Routes — team creation and settings.

Invariants:
    - The creator becomes the team's ADMIN
    - Only members can read or update a team
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_current_user, get_member_team
from papermark.core.domain_types import TeamRole
from papermark.infrastructure.database import get_db
from papermark.models.user import Team, User, UserTeam
from papermark.schemas.team import TeamCreate, TeamResponse, TeamUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/teams", tags=["teams"])


def _team_response(team: Team) -> TeamResponse:
    return TeamResponse(
        id=team.id, name=team.name, plan=team.plan,
        global_block_list=team.global_block_list or [],
        webhook_url=team.webhook_url,
    )


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    team = Team(name=body.name)
    db.add(team)
    await db.flush()
    db.add(UserTeam(user_id=user.id, team_id=team.id, role=TeamRole.ADMIN.value))
    await db.commit()
    logger.info("Team created", extra={"team_id": str(team.id)})
    return _team_response(team)


@router.get("")
async def list_teams(
    user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Team, UserTeam.role)
        .join(UserTeam, UserTeam.team_id == Team.id)
        .where(UserTeam.user_id == user.id)
        .order_by(Team.created_at),
    )
    return {
        "teams": [
            {"id": str(team.id), "name": team.name, "plan": team.plan, "role": role}
            for team, role in result.all()
        ],
    }


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(team: Team = Depends(get_member_team)):
    return _team_response(team)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    body: TeamUpdate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    updates = body.model_dump(exclude_unset=True)
    if updates.get("name", "") is None:
        updates.pop("name")
    if "global_block_list" in updates:
        updates["global_block_list"] = updates["global_block_list"] or []
    for field, value in updates.items():
        setattr(team, field, value)
    await db.commit()
    return _team_response(team)
