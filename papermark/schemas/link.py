"""Link Schemas — link settings written by team members.

Invariants:
    - Passwords are accepted in plaintext here and encrypted before persistence
    - allow/deny list entries are stripped and lowercased
    - custom field identifiers are unique per link
"""

from datetime import datetime
from uuid import UUID
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class CustomField(BaseModel):
    identifier: str = Field(min_length=1, max_length=100)
    label: str = Field(min_length=1, max_length=200)
    required: bool = False


class LinkSettings(BaseModel):
    """Fields shared by create and update."""
    name: str | None = Field(None, max_length=200)
    password: str | None = Field(None, max_length=200)
    expires_at: datetime | None = None
    email_protected: bool = True
    email_authenticated: bool = False
    allow_download: bool = False
    allow_list: list[str] = Field(default_factory=list)
    deny_list: list[str] = Field(default_factory=list)
    enable_notification: bool = True
    enable_agreement: bool = False
    agreement_id: UUID | None = None
    enable_watermark: bool = False
    watermark_config: dict | None = None
    enable_screenshot_protection: bool = False
    audience_type: Literal["GENERAL", "GROUP"] = "GENERAL"
    group_id: UUID | None = None
    custom_fields: list[CustomField] = Field(default_factory=list)

    @field_validator("allow_list", "deny_list")
    @classmethod
    def clean_rules(cls, v: list[str]) -> list[str]:
        return [rule.strip().lower() for rule in v if rule.strip()]

    @field_validator("custom_fields")
    @classmethod
    def unique_identifiers(cls, v: list[CustomField]) -> list[CustomField]:
        identifiers = [f.identifier for f in v]
        if len(identifiers) != len(set(identifiers)):
            raise ValueError("custom field identifiers must be unique")
        return v

    @model_validator(mode="after")
    def check_dependent_fields(self):
        if self.enable_agreement and not self.agreement_id:
            raise ValueError("agreement_id is required when enable_agreement is set")
        if self.audience_type == "GROUP" and not self.group_id:
            raise ValueError("group_id is required for GROUP audience links")
        if self.email_authenticated:
            self.email_protected = True
        return self


class LinkCreate(LinkSettings):
    link_type: Literal["DOCUMENT_LINK", "DATAROOM_LINK"] = "DOCUMENT_LINK"
    document_id: UUID | None = None
    dataroom_id: UUID | None = None

    @model_validator(mode="after")
    def check_target(self):
        if self.link_type == "DOCUMENT_LINK" and (not self.document_id or self.dataroom_id):
            raise ValueError("DOCUMENT_LINK requires document_id only")
        if self.link_type == "DATAROOM_LINK" and (not self.dataroom_id or self.document_id):
            raise ValueError("DATAROOM_LINK requires dataroom_id only")
        return self


class LinkUpdate(LinkSettings):
    pass


class ArchiveToggle(BaseModel):
    is_archived: bool
