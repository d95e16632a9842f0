import json

import pytest

from dtexplorer.diff import DeviceTreeDiff, DiffEntry, DiffType
from dtexplorer.tree import DeviceTree, DeviceTreeNode, DeviceTreeProperty, PropertyKind


def make_tree(compatible="acme,board", with_uart=False, uart_speed=None):
    tree = DeviceTree()
    tree.root.add_property(DeviceTreeProperty("compatible", compatible))
    soc = DeviceTreeNode("soc")
    soc.add_property(DeviceTreeProperty("reg", [0x1000, 0x100]))
    tree.root.add_child(soc)
    if with_uart:
        uart = DeviceTreeNode("uart")
        if uart_speed is not None:
            uart.add_property(DeviceTreeProperty("current-speed", [uart_speed]))
        fifo = DeviceTreeNode("fifo")
        uart.add_child(fifo)
        tree.root.add_child(uart)
    return tree


def test_identical_trees_have_no_changes():
    diff = DeviceTreeDiff(make_tree(), make_tree())
    assert diff.generate_diff() == []
    assert diff.total_changes() == 0


def test_modified_property_entry():
    diff = DeviceTreeDiff(make_tree("a"), make_tree("b"))
    assert diff.generate_diff() == [
        DiffEntry(
            DiffType.MODIFIED,
            "/",
            "compatible",
            old_value='"a"',
            new_value='"b"',
            description="Property modified: compatible",
        )
    ]
    assert diff.modified_count() == len(diff.modified_properties())


def test_change_of_kind_is_a_modification():
    base = make_tree()
    overlay = make_tree()
    overlay.root.add_property(DeviceTreeProperty("compatible", [1]))
    entries = diff_entries = DeviceTreeDiff(base, overlay).generate_diff()
    assert [e.type for e in entries] == [DiffType.MODIFIED]
    assert diff_entries[0].new_value == "<0x1>"


def test_cells_and_cells64_with_same_numbers_differ():
    base = make_tree()
    overlay = make_tree()
    base.root.add_property(DeviceTreeProperty("size", [4], PropertyKind.CELLS))
    overlay.root.add_property(DeviceTreeProperty("size", [4], PropertyKind.CELLS64))
    entries = DeviceTreeDiff(base, overlay).generate_diff()
    assert [(e.type, e.property_name) for e in entries] == [(DiffType.MODIFIED, "size")]


def test_added_subtree_reports_every_node():
    overlay = make_tree(with_uart=True, uart_speed=115200)
    diff = DeviceTreeDiff(make_tree(), overlay)
    subtree = overlay.find_node_by_path("/uart")
    assert diff.added_count() == len(list(subtree.walk()))
    assert [e.path for e in diff.added_nodes()] == ["//uart", "//uart/fifo"]
    assert diff.added_nodes()[0].description == "Node added: uart"
    assert all(e.is_node_change for e in diff.generate_diff())


def test_removed_subtree_is_mirror_of_added():
    with_uart = make_tree(with_uart=True)
    added = DeviceTreeDiff(make_tree(), with_uart).added_nodes()
    removed = DeviceTreeDiff(with_uart, make_tree()).removed_nodes()
    assert [e.path for e in removed] == [e.path for e in added]
    assert removed[0].description == "Node removed: uart"


def test_property_added_and_removed():
    base = make_tree()
    overlay = make_tree()
    base.root.add_property(DeviceTreeProperty("model", "old"))
    overlay.root.add_property(DeviceTreeProperty("serial", b"\x01"))
    entries = DeviceTreeDiff(base, overlay).generate_diff()
    assert entries == [
        DiffEntry(DiffType.ADDED, "/", "serial", new_value="[0x01]",
                  description="Property added: serial"),
        DiffEntry(DiffType.REMOVED, "/", "model", old_value='"old"',
                  description="Property removed: model"),
    ]


def test_children_are_compared_in_name_order():
    base = DeviceTree()
    overlay = DeviceTree()
    for name in ["zeta", "alpha", "mid"]:
        overlay.root.add_child(DeviceTreeNode(name))
    paths = [e.path for e in DeviceTreeDiff(base, overlay).generate_diff()]
    assert paths == sorted(paths)


def test_missing_trees_are_invalid():
    diff = DeviceTreeDiff(None, make_tree())
    assert not diff.is_valid()
    assert diff.validation_errors() == ["Base device tree is null"]
    assert diff.generate_diff() == []
    both = DeviceTreeDiff(None, None)
    assert both.validation_errors() == ["Base device tree is null", "Overlay device tree is null"]


def test_missing_overlay_root_removes_root():
    overlay = make_tree()
    overlay.root = None
    removed = DeviceTreeDiff(make_tree(), overlay).removed_nodes()
    assert removed[0] == DiffEntry(DiffType.REMOVED, "/", description="Node removed: /")


def test_result_is_a_copy_of_the_cache():
    diff = DeviceTreeDiff(make_tree("a"), make_tree("b"))
    first = diff.generate_diff()
    first.clear()
    assert diff.total_changes() == len(diff.generate_diff()) > 0


def test_export_json_matches_entries():
    diff = DeviceTreeDiff(make_tree("a", with_uart=True), make_tree("b"))
    document = json.loads(diff.export_json())["diff"]
    entries = diff.generate_diff()
    assert document["total_changes"] == len(entries)
    assert document["removed"] == diff.removed_count()
    assert [c["type"] for c in document["changes"]] == [e.type.value for e in entries]
    assert document["changes"][0]["old_value"] == '"a"'
    assert "property" not in document["changes"][-1]


def test_export_yaml_lists_fields():
    diff = DeviceTreeDiff(make_tree("a"), make_tree("b"))
    text = diff.export_yaml()
    assert text.startswith("diff:\n")
    assert "    - type: modified\n" in text
    assert "      property: compatible\n" in text
    assert "      description: Property modified: compatible\n" in text


def test_export_patch_format():
    diff = DeviceTreeDiff(make_tree("a"), make_tree("b"))
    text = diff.export_patch()
    assert text.startswith("--- Device Tree Diff ---\n")
    assert '[~] /:compatible\n  - "a"\n  + "b"\n' in text


@pytest.mark.parametrize("exporter", ["export_json", "export_yaml", "export_patch"])
def test_exports_are_deterministic(exporter):
    first = getattr(DeviceTreeDiff(make_tree("a"), make_tree("b")), exporter)()
    second = getattr(DeviceTreeDiff(make_tree("a"), make_tree("b")), exporter)()
    assert first == second