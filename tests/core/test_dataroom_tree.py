"""Data Room Tree — tests for numbering, ancestor walks and visibility filtering.

Tests cover:
    - siblings ordered by order_index then name, folders and documents together
    - dotted hierarchical indexes in pre-order
    - ancestor walks stop on cycles
    - folders_to_make_visible covers ancestors of visible items
    - filter_visible hides whole subtrees under hidden folders
"""

from uuid import uuid4

from papermark.core.dataroom_tree import (
    TreeItem,
    ancestor_folder_ids,
    build_hierarchy,
    compute_hierarchical_indexes,
    filter_visible,
    folders_to_make_visible,
    sort_items,
)


def _folder(name, parent=None, order=None):
    return TreeItem(id=uuid4(), name=name, type="folder", parent_id=parent, order_index=order)


def _doc(name, folder=None, order=None):
    return TreeItem(
        id=uuid4(), name=name, type="document", parent_id=folder,
        order_index=order, document_id=uuid4(),
    )


# ─── ordering & numbering ────────────────────────────────────────

def test_sort_items_puts_explicit_order_first():
    a, b, c = _doc("b"), _doc("a"), _doc("z", order=0)
    assert [i.name for i in sort_items([a, b, c])] == ["z", "a", "b"]


def test_sort_items_name_is_case_insensitive():
    items = [_doc("beta"), _doc("Alpha")]
    assert [i.name for i in sort_items(items)] == ["Alpha", "beta"]


def test_compute_indexes_numbers_folders_and_documents_together():
    root = _folder("Finance", order=0)
    sub = _folder("Q1", parent=root.id)
    inner = _doc("report.pdf", folder=sub.id)
    top_doc = _doc("readme.pdf", order=1)
    nodes = compute_hierarchical_indexes([inner, top_doc, sub, root])
    indexes = {n.item.name: n.hierarchical_index for n in nodes}
    assert indexes == {
        "Finance": "1", "Q1": "1.1", "report.pdf": "1.1.1", "readme.pdf": "2",
    }
    assert [n.item.name for n in nodes] == ["Finance", "Q1", "report.pdf", "readme.pdf"]


def test_orphans_are_left_out():
    orphan = _doc("lost.pdf", folder=uuid4())
    nodes = compute_hierarchical_indexes([orphan, _doc("kept.pdf")])
    assert [n.item.name for n in nodes] == ["kept.pdf"]


def test_to_dict_includes_document_id_for_documents():
    doc = _doc("a.pdf")
    data = build_hierarchy([doc])[0].to_dict()
    assert data["document_id"] == str(doc.document_id)
    assert data["children"] == []


# ─── ancestor walks ─────────────────────────────────────────────

def test_ancestor_ids_nearest_first():
    a, b, c = uuid4(), uuid4(), uuid4()
    parent_of = {c: b, b: a, a: None}
    assert ancestor_folder_ids(c, parent_of) == [c, b, a]


def test_ancestor_walk_stops_on_cycle():
    a, b = uuid4(), uuid4()
    assert ancestor_folder_ids(a, {a: b, b: a}) == [a, b]


def test_ancestor_walk_of_root_is_empty():
    assert ancestor_folder_ids(None, {}) == []


# ─── visibility ─────────────────────────────────────────────────

def test_visible_document_reveals_its_folder_chain():
    top, mid = uuid4(), uuid4()
    doc_row = uuid4()
    folders = folders_to_make_visible(
        {doc_row: {"item_type": "DATAROOM_DOCUMENT", "view": True}},
        {doc_row: mid},
        {mid: top, top: None},
    )
    assert folders == {mid, top}


def test_visible_folder_reveals_parents_not_itself_twice():
    top, mid = uuid4(), uuid4()
    folders = folders_to_make_visible(
        {mid: {"item_type": "DATAROOM_FOLDER", "view": True}},
        {},
        {mid: top, top: None},
    )
    assert folders == {top}


def test_hidden_items_reveal_nothing():
    doc_row, folder = uuid4(), uuid4()
    folders = folders_to_make_visible(
        {doc_row: {"item_type": "DATAROOM_DOCUMENT", "view": False}},
        {doc_row: folder},
        {folder: None},
    )
    assert folders == set()


def test_filter_visible_drops_hidden_subtree():
    folder = _folder("Secret")
    inside = _doc("inside.pdf", folder=folder.id)
    outside = _doc("public.pdf")
    tree = build_hierarchy([folder, inside, outside])
    kept = filter_visible(tree, {inside.id, outside.id})
    assert [n.item.name for n in kept] == ["public.pdf"]


def test_filter_visible_keeps_visible_children():
    folder = _folder("Open")
    a, b = _doc("a.pdf", folder=folder.id), _doc("b.pdf", folder=folder.id)
    tree = build_hierarchy([folder, a, b])
    kept = filter_visible(tree, {folder.id, b.id})
    assert [c.item.name for c in kept[0].children] == ["b.pdf"]
