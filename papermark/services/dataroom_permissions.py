"""Data Room Permissions — hierarchical indexes, group access controls and the
tree a link visitor is allowed to see.

Invariants:
    - One ViewerGroupAccessControl per (group, item); updates never duplicate rows
    - After set_group_permissions every ancestor folder of a visible item is visible
    - Ancestor folders made visible keep their existing can_download, new rows get False
    - GENERAL links see the whole room; GROUP links see only can_view items
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.dataroom_tree import (
    TreeItem, assign_hierarchical_indexes, build_hierarchy,
    compute_hierarchical_indexes, filter_visible, folders_to_make_visible,
)
from papermark.core.domain_types import ItemType, LinkAudienceType
from papermark.models.dataroom import DataroomDocument, DataroomFolder
from papermark.models.document import Document
from papermark.models.link import Link
from papermark.models.viewer import ViewerGroup, ViewerGroupAccessControl

logger = logging.getLogger(__name__)


async def load_room_items(
    db: AsyncSession, dataroom_id: UUID,
) -> tuple[list[DataroomFolder], list[tuple[DataroomDocument, str]]]:
    folders = (await db.execute(
        select(DataroomFolder).where(DataroomFolder.dataroom_id == dataroom_id),
    )).scalars().all()
    documents = (await db.execute(
        select(DataroomDocument, Document.name)
        .join(Document, Document.id == DataroomDocument.document_id)
        .where(DataroomDocument.dataroom_id == dataroom_id),
    )).all()
    return list(folders), [(dd, name) for dd, name in documents]


def to_tree_items(
    folders: list[DataroomFolder], documents: list[tuple[DataroomDocument, str]],
) -> list[TreeItem]:
    items = [
        TreeItem(
            id=f.id, name=f.name, type="folder",
            parent_id=f.parent_id, order_index=f.order_index,
        )
        for f in folders
    ]
    items.extend(
        TreeItem(
            id=dd.id, name=name, type="document",
            parent_id=dd.folder_id, order_index=dd.order_index,
            document_id=dd.document_id,
        )
        for dd, name in documents
    )
    return items


async def generate_index(db: AsyncSession, dataroom_id: UUID) -> dict:
    """Persist dotted hierarchical indexes for every reachable item."""
    folders, documents = await load_room_items(db, dataroom_id)
    nodes = compute_hierarchical_indexes(to_tree_items(folders, documents))
    index_of = {node.item.id: node.hierarchical_index for node in nodes}

    folders_updated = 0
    for folder in folders:
        if folder.id in index_of:
            folder.hierarchical_index = index_of[folder.id]
            folders_updated += 1
    documents_updated = 0
    for dd, _ in documents:
        if dd.id in index_of:
            dd.hierarchical_index = index_of[dd.id]
            documents_updated += 1
    await db.commit()
    logger.info(
        "Hierarchical index generated",
        extra={"dataroom_id": str(dataroom_id)},
    )
    return {"folders_updated": folders_updated, "documents_updated": documents_updated}


async def room_tree(db: AsyncSession, dataroom_id: UUID) -> list:
    """Full numbered tree (team view)."""
    folders, documents = await load_room_items(db, dataroom_id)
    tree = build_hierarchy(to_tree_items(folders, documents))
    assign_hierarchical_indexes(tree)
    return tree


async def group_controls(
    db: AsyncSession, group_id: UUID,
) -> dict[UUID, ViewerGroupAccessControl]:
    result = await db.execute(
        select(ViewerGroupAccessControl).where(ViewerGroupAccessControl.group_id == group_id),
    )
    return {c.item_id: c for c in result.scalars().all()}


async def visible_tree(db: AsyncSession, link: Link) -> list[dict]:
    """The data room tree as the link's audience is allowed to see it."""
    tree = await room_tree(db, link.dataroom_id)
    if link.audience_type == LinkAudienceType.GROUP:
        controls = await group_controls(db, link.group_id) if link.group_id else {}
        tree = filter_visible(tree, {i for i, c in controls.items() if c.can_view})
    return [node.to_dict() for node in tree]


async def find_room_document(
    db: AsyncSession, dataroom_id: UUID, document_id: UUID,
) -> DataroomDocument | None:
    result = await db.execute(
        select(DataroomDocument)
        .where(DataroomDocument.dataroom_id == dataroom_id)
        .where(DataroomDocument.document_id == document_id),
    )
    return result.scalar_one_or_none()


async def group_document_access(
    db: AsyncSession, group_id: UUID, room_document: DataroomDocument | None,
) -> ViewerGroupAccessControl | None:
    if room_document is None:
        return None
    result = await db.execute(
        select(ViewerGroupAccessControl)
        .where(ViewerGroupAccessControl.group_id == group_id)
        .where(ViewerGroupAccessControl.item_id == room_document.id),
    )
    return result.scalar_one_or_none()


async def link_can_download(
    db: AsyncSession, link: Link, room_document: DataroomDocument | None,
) -> bool:
    """Link allow_download, narrowed for GROUP links to the group's control row."""
    if not link.allow_download:
        return False
    if link.audience_type != LinkAudienceType.GROUP or not link.group_id:
        return True
    control = await group_document_access(db, link.group_id, room_document)
    return bool(control and control.can_download)


async def set_group_permissions(
    db: AsyncSession, group: ViewerGroup, permissions: dict[UUID, dict],
) -> list[ViewerGroupAccessControl]:
    """Upsert controls, then make every ancestor folder of a visible item visible.

    permissions maps item id -> {"item_type", "view", "download"}.
    """
    existing = await group_controls(db, group.id)
    for item_id, perm in permissions.items():
        control = existing.get(item_id)
        if control is None:
            control = ViewerGroupAccessControl(
                group_id=group.id, item_id=item_id, item_type=perm["item_type"],
            )
            db.add(control)
            existing[item_id] = control
        control.can_view = bool(perm.get("view"))
        control.can_download = bool(perm.get("download"))

    folders, documents = await load_room_items(db, group.dataroom_id)
    parent_of = {f.id: f.parent_id for f in folders}
    document_folder = {dd.id: dd.folder_id for dd, _ in documents}
    for folder_id in folders_to_make_visible(permissions, document_folder, parent_of):
        control = existing.get(folder_id)
        if control is None:
            control = ViewerGroupAccessControl(
                group_id=group.id, item_id=folder_id,
                item_type=ItemType.DATAROOM_FOLDER.value,
                can_view=True, can_download=False,
            )
            db.add(control)
            existing[folder_id] = control
        elif not control.can_view:
            control.can_view = True

    await db.commit()
    logger.info(
        f"Permissions set for {len(permissions)} items",
        extra={"dataroom_id": str(group.dataroom_id)},
    )
    return list(existing.values())
