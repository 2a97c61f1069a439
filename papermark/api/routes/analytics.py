"""Analytics Routes — team dashboard queries and view archiving.

Invariants:
    - type and interval are validated against their enums (400 otherwise)
    - Archived views disappear from every aggregate but stay in the database
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_member_team, get_team_resource
from papermark.core.domain_types import AnalyticsInterval, AnalyticsType
from papermark.infrastructure.database import get_db
from papermark.models.user import Team
from papermark.models.view import View
from papermark.services.analytics import TeamAnalytics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/teams/{team_id}", tags=["analytics"])


class ViewArchiveUpdate(BaseModel):
    is_archived: bool


@router.get("/analytics")
async def get_analytics(
    type_: AnalyticsType = Query(AnalyticsType.OVERVIEW, alias="type"),
    interval: AnalyticsInterval = Query(AnalyticsInterval.LAST_7D),
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    return await TeamAnalytics(db, team).query(type_.value, interval.value, start, end)


@router.patch("/views/{view_id}")
async def update_view(
    view_id: UUID,
    body: ViewArchiveUpdate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    view = await get_team_resource(db, View, view_id, team)
    view.is_archived = body.is_archived
    await db.commit()
    logger.info(
        f"View {'archived' if body.is_archived else 'restored'}",
        extra={"view_id": str(view_id), "team_id": str(team.id)},
    )
    return {"id": str(view.id), "is_archived": view.is_archived}
