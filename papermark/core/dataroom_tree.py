"""Data Room Tree — hierarchical numbering, ancestor walks and permission-aware filtering.

Invariants:
    - Folders and documents share sibling numbering under the same parent
    - Siblings ordered by order_index (nulls last), then name (case-insensitive)
    - Indexes are dotted paths: "1", "1.2", "1.2.3"
    - Ancestor walks terminate on cycles and dangling parent ids
    - Items unreachable from the root (orphans, cycles) get no index
"""

from dataclasses import dataclass, field
from typing import Literal
from uuid import UUID

from papermark.core.domain_types import ItemType

ItemKind = Literal["folder", "document"]


@dataclass
class TreeItem:
    """Flat data room item. For documents parent_id is the containing folder."""
    id: UUID
    name: str
    type: ItemKind
    parent_id: UUID | None = None
    order_index: int | None = None
    document_id: UUID | None = None


@dataclass
class TreeNode:
    item: TreeItem
    hierarchical_index: str = ""
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "id": str(self.item.id),
            "name": self.item.name,
            "type": self.item.type,
            "order_index": self.item.order_index,
            "hierarchical_index": self.hierarchical_index,
            "children": [child.to_dict() for child in self.children],
        }
        if self.item.document_id is not None:
            data["document_id"] = str(self.item.document_id)
        return data


def sort_items(items: list[TreeItem]) -> list[TreeItem]:
    """Order siblings: explicit order_index first, then by name."""
    return sorted(
        items,
        key=lambda i: (
            i.order_index is None,
            i.order_index if i.order_index is not None else 0,
            i.name.casefold(),
        ),
    )


def build_hierarchy(items: list[TreeItem]) -> list[TreeNode]:
    """Build the tree from flat items, rooted at parent_id None."""
    by_parent: dict[UUID | None, list[TreeItem]] = {}
    for item in items:
        by_parent.setdefault(item.parent_id, []).append(item)

    visited: set[UUID] = set()

    def _children(parent_id: UUID | None) -> list[TreeNode]:
        nodes = []
        for item in sort_items(by_parent.get(parent_id, [])):
            if item.id in visited:
                continue
            visited.add(item.id)
            node = TreeNode(item=item)
            if item.type == "folder":
                node.children = _children(item.id)
            nodes.append(node)
        return nodes

    return _children(None)


def assign_hierarchical_indexes(nodes: list[TreeNode], prefix: str = "") -> None:
    for position, node in enumerate(nodes, start=1):
        node.hierarchical_index = f"{prefix}.{position}" if prefix else str(position)
        if node.children:
            assign_hierarchical_indexes(node.children, node.hierarchical_index)


def flatten_hierarchy(nodes: list[TreeNode]) -> list[TreeNode]:
    """Depth-first, pre-order."""
    result: list[TreeNode] = []
    for node in nodes:
        result.append(node)
        result.extend(flatten_hierarchy(node.children))
    return result


def compute_hierarchical_indexes(items: list[TreeItem]) -> list[TreeNode]:
    """Build, number and flatten in one pass. Returns nodes in pre-order."""
    tree = build_hierarchy(items)
    assign_hierarchical_indexes(tree)
    return flatten_hierarchy(tree)


def ancestor_folder_ids(
    folder_id: UUID | None, parent_of: dict[UUID, UUID | None],
) -> list[UUID]:
    """Walk up from folder_id (inclusive), nearest first."""
    chain: list[UUID] = []
    seen: set[UUID] = set()
    current = folder_id
    while current is not None and current not in seen:
        seen.add(current)
        chain.append(current)
        current = parent_of.get(current)
    return chain


def folders_to_make_visible(
    permissions: dict[UUID, dict],
    document_folder: dict[UUID, UUID | None],
    parent_of: dict[UUID, UUID | None],
) -> set[UUID]:
    """Folders that must become visible so every visible item stays reachable.

    permissions maps item id -> {"item_type", "view", "download"}.
    document_folder maps DataroomDocument id -> folder id.
    """
    folders: set[UUID] = set()
    for item_id, perm in permissions.items():
        if not perm.get("view"):
            continue
        if perm["item_type"] == ItemType.DATAROOM_DOCUMENT:
            folders.update(
                ancestor_folder_ids(document_folder.get(item_id), parent_of),
            )
        elif perm["item_type"] == ItemType.DATAROOM_FOLDER:
            folders.update(
                ancestor_folder_ids(parent_of.get(item_id), parent_of),
            )
    return folders


def filter_visible(
    nodes: list[TreeNode], visible_ids: set[UUID],
) -> list[TreeNode]:
    """Keep nodes whose item id is visible. A hidden folder hides its subtree."""
    kept: list[TreeNode] = []
    for node in nodes:
        if node.item.id not in visible_ids:
            continue
        kept.append(TreeNode(
            item=node.item,
            hierarchical_index=node.hierarchical_index,
            children=filter_visible(node.children, visible_ids),
        ))
    return kept
