from __future__ import annotations

from connectors.base import DirectoryEntry
from core.assembler import (
    FilterConfig,
    OutputConfig,
    PropertyFilter,
    RealParent,
    TreeNode,
    VirtualRoot,
    apply_filters,
    build_flat_list,
    build_tree,
    filter_by_properties,
    filter_by_type,
    resolve_parent,
)
from core.walker import walk
from drive_fakes import GDOC, PDF, doc, folder, sample_drive


def entries(*raw: dict) -> list[DirectoryEntry]:
    return [DirectoryEntry.from_api(r) for r in raw]


def collected() -> list[DirectoryEntry]:
    return walk(sample_drive(), access_token="tok").flat


def test_tree_from_sample_hierarchy():
    tree = build_tree(collected(), "root").to_dict()
    assert tree["id"] == "root"
    assert tree["name"] == "(root)"
    assert [c["id"] for c in tree["children"]] == ["A", "B"]
    a = tree["children"][0]
    assert [c["id"] for c in a["children"]] == ["C"]
    assert tree["children"][1]["children"] == []


def test_flat_list_excludes_folders_by_default():
    records = build_flat_list(collected())
    assert [r["id"] for r in records] == ["B", "C"]
    assert records[1] == {
        "id": "C",
        "name": "C",
        "mimeType": PDF,
        "parents": ["A"],
        "properties": {"status": "done"},
    }


def test_flat_list_can_include_folders():
    assert [r["id"] for r in build_flat_list(collected(), include_folders=True)] == ["A", "B", "C"]


def test_metadata_filter_restricts_both_modes():
    config = FilterConfig(property_filters=[PropertyFilter("properties", "status", "done")])
    survivors = apply_filters(collected(), config)

    assert [r["id"] for r in build_flat_list(survivors)] == ["C"]

    tree = build_tree(survivors, "root")
    # A was filtered out, so C falls back to the virtual root
    assert tree.name == "(root)"
    assert [c.id for c in tree.children] == ["C"]


def test_tree_returns_start_entry_when_it_survived():
    items = entries(folder("start", "parent"), doc("f", "start"))
    tree = build_tree(items, "start")
    assert tree.id == "start"
    assert tree.name == "start"
    assert [c.id for c in tree.children] == ["f"]


def test_entries_without_parents_go_to_virtual_root():
    tree = build_tree(entries(doc("orphan")), "root")
    assert [c.id for c in tree.children] == ["orphan"]


def test_only_first_parent_is_used_for_placement():
    items = entries(folder("P1", "root"), folder("P2", "root"), doc("f", "P2", "P1"))
    tree = build_tree(items, "root")
    p1, p2 = tree.children
    assert p1.children == []
    assert [c.id for c in p2.children] == ["f"]


def test_resolve_parent_variants():
    nodes = {"A": TreeNode(id="A", name="A", mime_type=PDF)}
    assert resolve_parent(DirectoryEntry.from_api(doc("x", "A")), nodes) == RealParent("A")
    assert resolve_parent(DirectoryEntry.from_api(doc("x", "B")), nodes) == VirtualRoot()
    assert resolve_parent(DirectoryEntry.from_api(doc("x")), nodes) == VirtualRoot()


def test_type_filter_keeps_allowed_mime_types():
    items = entries(doc("a", mime_type=PDF), doc("b", mime_type=GDOC))
    assert [e.id for e in filter_by_type(items, [GDOC])] == ["b"]
    assert filter_by_type(items, []) == items


def test_property_filter_semantics():
    items = entries(
        doc("match", properties={"status": "done"}),
        doc("other", properties={"status": "open"}),
        doc("bare"),
        doc("private", appProperties={"status": "done"}),
    )

    public = filter_by_properties(items, [PropertyFilter("properties", "status", "done")])
    assert [e.id for e in public] == ["match"]

    private = filter_by_properties(items, [PropertyFilter("appProperties", "status", "done")])
    assert [e.id for e in private] == ["private"]

    # Empty key or value is vacuously satisfied
    skipped = filter_by_properties(items, [PropertyFilter("properties", "", "done"), PropertyFilter("properties", "status", "")])
    assert skipped == items


def test_every_property_triple_must_match():
    items = entries(
        doc("both", properties={"status": "done", "owner": "ops"}),
        doc("one", properties={"status": "done"}),
    )
    survivors = filter_by_properties(
        items,
        [PropertyFilter("properties", "status", "done"), PropertyFilter("properties", "owner", "ops")],
    )
    assert [e.id for e in survivors] == ["both"]


def test_type_and_property_filters_commute():
    items = entries(
        doc("a", mime_type=PDF, properties={"k": "v"}),
        doc("b", mime_type=GDOC, properties={"k": "v"}),
        doc("c", mime_type=PDF),
    )
    props = [PropertyFilter("properties", "k", "v")]
    one = filter_by_properties(filter_by_type(items, [PDF]), props)
    other = filter_by_type(filter_by_properties(items, props), [PDF])
    assert [e.id for e in one] == [e.id for e in other] == ["a"]


def test_query_filter_runs_after_other_filters():
    items = entries(doc("report.pdf"), doc("backup.pdf"), folder("reports"))
    config = FilterConfig(file_types=[PDF], query="not name contains 'backup'")
    assert [e.id for e in apply_filters(items, config)] == ["report.pdf"]


def test_tree_and_flat_list_cover_the_same_ids():
    flat = collected()
    tree = build_tree(flat, "root")
    listed = {r["id"] for r in build_flat_list(flat, include_folders=True)}
    assert set(tree.iter_ids()) == listed


def test_output_config_controls_metadata_and_permissions():
    items = entries(
        doc(
            "f",
            "root",
            properties={"p": "1"},
            appProperties={"a": "2"},
            permissions=[{"role": "reader"}],
        )
    )

    record = build_flat_list(items, output=OutputConfig(properties_to_return="appProperties"))[0]
    assert "properties" not in record
    assert record["appProperties"] == {"a": "2"}
    assert "permissions" not in record

    record = build_flat_list(items, output=OutputConfig(properties_to_return="none", include_permissions=True))[0]
    assert "properties" not in record and "appProperties" not in record
    assert record["permissions"] == [{"role": "reader"}]

    node = build_tree(items, "root", OutputConfig(properties_to_return="both")).children[0].to_dict()
    assert node["properties"] == {"p": "1"}
    assert node["appProperties"] == {"a": "2"}
    assert node["children"] == []


def test_tree_over_cyclic_graph_is_finite():
    # root -> A -> B, and B lists both A and root again
    items = entries(folder("A", "root"), folder("B", "A"), folder("A", "B"), folder("root", "B"))

    tree = build_tree(items, "root")

    assert tree.id == "root"
    assert [c.id for c in tree.children] == ["A"]
    assert [c.id for c in tree.children[0].children] == ["B"]
    assert tree.children[0].children[0].children == []
    assert tree.to_dict()["children"][0]["children"][0]["children"] == []


def test_entry_listed_under_itself_goes_to_virtual_root():
    tree = build_tree(entries(folder("loop", "loop")), "root")
    assert tree.name == "(root)"
    assert [c.id for c in tree.children] == ["loop"]
    assert tree.children[0].children == []
