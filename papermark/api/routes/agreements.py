"""Agreement Routes — NDA texts links can require visitors to accept."""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_member_team
from papermark.infrastructure.database import get_db
from papermark.models.link import Agreement
from papermark.models.user import Team
from papermark.schemas.document import AgreementCreate

router = APIRouter(prefix="/api/v1/teams/{team_id}/agreements", tags=["agreements"])


def _agreement_dict(agreement: Agreement) -> dict:
    return {
        "id": str(agreement.id),
        "name": agreement.name,
        "content": agreement.content,
        "created_at": agreement.created_at.isoformat(),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_agreement(
    body: AgreementCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    agreement = Agreement(team_id=team.id, name=body.name, content=body.content)
    db.add(agreement)
    await db.commit()
    return _agreement_dict(agreement)


@router.get("")
async def list_agreements(
    team: Team = Depends(get_member_team), db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Agreement).where(Agreement.team_id == team.id).order_by(Agreement.created_at),
    )
    return {"agreements": [_agreement_dict(a) for a in result.scalars().all()]}
