"""Data Room Routes — rooms, folders, placed documents and hierarchical indexes.

Invariants:
    - Folders and placed documents belong to the room in the path
    - A folder's parent must be in the same room
    - A document can be placed in a room once (409 otherwise)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_member_team, get_team_resource
from papermark.core.errors import ConflictError, ErrorContext, ResourceNotFoundError
from papermark.infrastructure.database import get_db
from papermark.models.dataroom import Dataroom, DataroomDocument, DataroomFolder
from papermark.models.document import Document
from papermark.models.user import Team
from papermark.schemas.dataroom import DataroomCreate, DataroomDocumentCreate, FolderCreate
from papermark.services.dataroom_permissions import (
    find_room_document, generate_index, room_tree,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/teams/{team_id}/datarooms", tags=["datarooms"])


async def _room_folder(db: AsyncSession, dataroom: Dataroom, folder_id: UUID) -> DataroomFolder:
    folder = await db.get(DataroomFolder, folder_id)
    if folder is None or folder.dataroom_id != dataroom.id:
        raise ResourceNotFoundError(
            "DataroomFolder", str(folder_id), ErrorContext(team_id=str(dataroom.team_id)),
        )
    return folder


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_dataroom(
    body: DataroomCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    dataroom = Dataroom(team_id=team.id, name=body.name)
    db.add(dataroom)
    await db.commit()
    logger.info("Data room created", extra={"dataroom_id": str(dataroom.id)})
    return {"id": str(dataroom.id), "name": dataroom.name}


@router.get("")
async def list_datarooms(
    team: Team = Depends(get_member_team), db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Dataroom).where(Dataroom.team_id == team.id).order_by(Dataroom.created_at),
    )
    return {
        "datarooms": [
            {"id": str(d.id), "name": d.name, "created_at": d.created_at.isoformat()}
            for d in result.scalars().all()
        ],
    }


@router.get("/{dataroom_id}")
async def get_dataroom(
    dataroom_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    """Room with its full numbered tree."""
    dataroom = await get_team_resource(db, Dataroom, dataroom_id, team)
    tree = await room_tree(db, dataroom.id)
    return {
        "id": str(dataroom.id),
        "name": dataroom.name,
        "items": [node.to_dict() for node in tree],
    }


@router.post("/{dataroom_id}/folders", status_code=status.HTTP_201_CREATED)
async def add_folder(
    dataroom_id: UUID,
    body: FolderCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    dataroom = await get_team_resource(db, Dataroom, dataroom_id, team)
    if body.parent_id:
        await _room_folder(db, dataroom, body.parent_id)
    folder = DataroomFolder(
        dataroom_id=dataroom.id, parent_id=body.parent_id,
        name=body.name, order_index=body.order_index,
    )
    db.add(folder)
    await db.commit()
    return {
        "id": str(folder.id),
        "name": folder.name,
        "parent_id": str(folder.parent_id) if folder.parent_id else None,
        "order_index": folder.order_index,
    }


@router.post("/{dataroom_id}/documents", status_code=status.HTTP_201_CREATED)
async def add_document(
    dataroom_id: UUID,
    body: DataroomDocumentCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    dataroom = await get_team_resource(db, Dataroom, dataroom_id, team)
    await get_team_resource(db, Document, body.document_id, team)
    if body.folder_id:
        await _room_folder(db, dataroom, body.folder_id)
    if await find_room_document(db, dataroom.id, body.document_id):
        raise ConflictError("Document is already in this data room")
    room_document = DataroomDocument(
        dataroom_id=dataroom.id, document_id=body.document_id,
        folder_id=body.folder_id, order_index=body.order_index,
    )
    db.add(room_document)
    await db.commit()
    return {
        "id": str(room_document.id),
        "document_id": str(room_document.document_id),
        "folder_id": str(room_document.folder_id) if room_document.folder_id else None,
        "order_index": room_document.order_index,
    }


@router.post("/{dataroom_id}/generate-index")
async def generate_hierarchical_index(
    dataroom_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    dataroom = await get_team_resource(db, Dataroom, dataroom_id, team)
    return await generate_index(db, dataroom.id)
