"""Data Room Schemas — rooms, folders, room documents, viewer groups and permissions."""

from uuid import UUID
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class DataroomCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    parent_id: UUID | None = None
    order_index: int | None = Field(None, ge=0)


class DataroomDocumentCreate(BaseModel):
    document_id: UUID
    folder_id: UUID | None = None
    order_index: int | None = Field(None, ge=0)


class ViewerGroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    allow_all: bool = False
    domains: list[str] = Field(default_factory=list)

    @field_validator("domains")
    @classmethod
    def normalize_domains(cls, v: list[str]) -> list[str]:
        cleaned = []
        for domain in v:
            domain = domain.strip().lower()
            if not domain:
                continue
            cleaned.append(domain if domain.startswith("@") else f"@{domain}")
        return cleaned


class GroupMembersAdd(BaseModel):
    emails: list[str] = Field(min_length=1, max_length=500)


class ItemPermission(BaseModel):
    item_type: Literal["DATAROOM_DOCUMENT", "DATAROOM_FOLDER"]
    view: bool = True
    download: bool = False


class PermissionsUpdate(BaseModel):
    """Maps data room item id (folder or DataroomDocument) to its permission."""
    permissions: dict[UUID, ItemPermission] = Field(min_length=1)
