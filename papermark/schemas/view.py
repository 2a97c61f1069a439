"""Visitor Schemas — view recording, page/video tracking and downloads.

Invariants:
    - duration_ms >= 0, page_number >= 1
    - video end_time >= start_time
    - view_type on data room requests is DATAROOM_VIEW or DOCUMENT_VIEW
"""

from uuid import UUID
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class VisitorCredentials(BaseModel):
    """Everything a visitor may submit to pass a link's gates."""
    link_id: UUID
    email: str | None = Field(None, max_length=320)
    name: str | None = Field(None, max_length=200)
    password: str | None = Field(None, max_length=200)
    has_confirmed_agreement: bool = False
    custom_fields: dict[str, str] | None = None
    code: str | None = Field(None, max_length=20)
    token: str | None = Field(None, max_length=200)
    preview: bool = False


class ViewRequest(VisitorCredentials):
    document_id: UUID
    document_version_id: UUID | None = None
    has_pages: bool | None = None


class DataroomViewRequest(VisitorCredentials):
    dataroom_id: UUID
    view_type: Literal["DATAROOM_VIEW", "DOCUMENT_VIEW"] = "DATAROOM_VIEW"
    document_id: UUID | None = None
    document_version_id: UUID | None = None
    has_pages: bool | None = None

    @model_validator(mode="after")
    def document_required_for_document_view(self):
        if self.view_type == "DOCUMENT_VIEW" and not self.document_id:
            raise ValueError("document_id is required for DOCUMENT_VIEW")
        return self


class PageViewRecord(BaseModel):
    view_id: UUID
    link_id: UUID
    document_id: UUID
    page_number: int = Field(ge=1)
    version_number: int = Field(1, ge=1)
    duration_ms: int = Field(ge=0)


class VideoEventRecord(BaseModel):
    view_id: UUID
    document_id: UUID
    event_type: str = Field(min_length=1, max_length=30)
    start_time: float = Field(ge=0)
    end_time: float = Field(ge=0)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class DownloadRequest(BaseModel):
    link_id: UUID
    view_id: UUID
