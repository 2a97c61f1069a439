"""Test factories — seed rows directly through an AsyncSession."""

from datetime import datetime, timezone

from papermark.models.document import Document, DocumentPage, DocumentVersion
from papermark.models.link import Link
from papermark.models.view import View


async def add_document(
    db, team, name="Pitch Deck", type_="pdf", num_pages=3, pages=True,
    download_only=False,
) -> tuple[Document, DocumentVersion]:
    """Document with one primary version; paged versions get num_pages page rows."""
    document = Document(
        team_id=team.id, name=name, type=type_, num_pages=num_pages,
        download_only=download_only,
    )
    db.add(document)
    await db.flush()
    version = DocumentVersion(
        document_id=document.id, version_number=1, type=type_,
        file=f"docs/{document.id}/file.{type_}",
        original_file=f"docs/{document.id}/original.{type_}",
        num_pages=num_pages, has_pages=pages, is_primary=True,
        created_at=datetime(2020, 1, 1, tzinfo=timezone.utc),
    )
    db.add(version)
    await db.flush()
    if pages:
        for n in range(1, num_pages + 1):
            db.add(DocumentPage(version_id=version.id, page_number=n, file=f"pages/{n}.png"))
    await db.commit()
    return document, version


async def add_link(db, team, **fields) -> Link:
    defaults = {"email_protected": False, "allow_list": [], "deny_list": [], "custom_fields": []}
    defaults.update(fields)
    link = Link(team_id=team.id, **defaults)
    db.add(link)
    await db.commit()
    return link


async def add_view(db, link, document, **fields) -> View:
    """DOCUMENT_VIEW row on `link`; pass viewed_at to age it."""
    view = View(
        link_id=link.id, team_id=link.team_id,
        document_id=document.id if document else None, **fields,
    )
    db.add(view)
    await db.commit()
    return view
