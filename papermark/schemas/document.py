"""Document Schemas — uploads (as already-stored file keys), versions and agreements.

Invariants:
    - page files are given in page order; page numbers are assigned 1..n
    - has_pages is implied by a non-empty pages list
"""

from typing import Literal

from pydantic import BaseModel, Field

DocumentTypeLiteral = Literal[
    "pdf", "image", "video", "sheet", "docs", "slides", "zip", "notion", "url",
]


class DocumentVersionCreate(BaseModel):
    file: str = Field(min_length=1, max_length=2000)
    original_file: str | None = Field(None, max_length=2000)
    type: DocumentTypeLiteral = "pdf"
    content_type: str | None = Field(None, max_length=200)
    storage_type: Literal["S3_PATH", "VERCEL_BLOB"] = "S3_PATH"
    num_pages: int | None = Field(None, ge=0)
    length: int | None = Field(None, ge=0)
    is_vertical: bool = False
    pages: list[str] = Field(default_factory=list)


class DocumentCreate(DocumentVersionCreate):
    name: str = Field(min_length=1, max_length=500)
    download_only: bool = False


class AgreementCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    content: str = Field(min_length=1, max_length=50_000)
