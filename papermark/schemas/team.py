"""Team Schemas — team creation and settings updates."""

from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class TeamUpdate(BaseModel):
    """Partial update; omitted fields stay unchanged."""
    name: str | None = Field(None, min_length=1, max_length=200)
    global_block_list: list[str] | None = None
    webhook_url: str | None = Field(None, max_length=2000)

    @field_validator("global_block_list")
    @classmethod
    def clean_block_list(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return sorted({entry.strip().lower() for entry in v if entry.strip()})

    @field_validator("webhook_url")
    @classmethod
    def check_webhook_scheme(cls, v: str | None) -> str | None:
        if v and not v.startswith(("https://", "http://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return v or None


class TeamResponse(BaseModel):
    id: UUID
    name: str
    plan: str
    global_block_list: list[str]
    webhook_url: str | None = None
