import json

import pytest

from dtexplorer.tree import (
    DeviceTree,
    DeviceTreeNode,
    DeviceTreeParser,
    DeviceTreeProperty,
    LoadError,
    PropertyKind,
)


def build_tree():
    tree = DeviceTree()
    root = tree.root
    root.add_property(DeviceTreeProperty("compatible", "acme,board"))
    cpus = DeviceTreeNode("cpus")
    cpu0 = DeviceTreeNode("cpu@0")
    cpu0.add_property(DeviceTreeProperty("reg", [0]))
    cpu1 = DeviceTreeNode("cpu@1")
    cpus.add_child(cpu0)
    cpus.add_child(cpu1)
    soc = DeviceTreeNode("soc")
    uart = DeviceTreeNode("uart")
    uart.add_property(DeviceTreeProperty("reg", [0x1000, 0x100]))
    uart.add_property(DeviceTreeProperty("data", b"\x01\xfe"))
    soc.add_child(uart)
    root.add_child(cpus)
    root.add_child(soc)
    return tree


class FakeParser(DeviceTreeParser):
    def __init__(self, suffix, result):
        self.suffix = suffix
        self.result = result
        self.calls = []

    def can_parse(self, filename):
        return filename.endswith(self.suffix)

    def parse(self, filename):
        self.calls.append(filename)
        return self.result


def test_kind_is_inferred():
    assert DeviceTreeProperty("a", "x").kind is PropertyKind.STRING
    assert DeviceTreeProperty("a", b"x").kind is PropertyKind.BINARY
    assert DeviceTreeProperty("a", [1, 2]).kind is PropertyKind.CELLS
    assert DeviceTreeProperty("a", [1], PropertyKind.CELLS64).kind is PropertyKind.CELLS64


def test_default_property_is_empty_string():
    prop = DeviceTreeProperty()
    assert prop.name == ""
    assert prop.kind is PropertyKind.STRING
    assert prop.value_as_string() == '""'


def test_value_as_string_formats():
    assert DeviceTreeProperty("status", "okay").value_as_string() == '"okay"'
    assert DeviceTreeProperty("reg", [1, 0x20]).value_as_string() == "<0x1 0x20>"
    assert DeviceTreeProperty("d", b"\x0a\xff").value_as_string() == "[0x0a 0xff]"


def test_cells64_string_uses_angle_brackets():
    prop = DeviceTreeProperty("big", [2**40], PropertyKind.CELLS64)
    text = prop.value_as_string()
    assert text.startswith("<0x") and text.endswith(">")
    assert int(text[1:-1], 16) == 2**40


def test_typed_accessors_return_empty_for_other_kinds():
    cells = DeviceTreeProperty("reg", [3, 4])
    assert cells.as_cells() == [3, 4]
    assert cells.as_binary() == b""
    assert cells.as_cells64() == []
    binary = DeviceTreeProperty("d", bytearray(b"ab"))
    assert binary.as_binary() == b"ab"
    assert binary.as_cells() == []
    wide = DeviceTreeProperty("w", [7], PropertyKind.CELLS64)
    assert wide.as_cells64() == [7]
    assert wide.as_cells() == []


def test_cell_range_is_checked():
    with pytest.raises(ValueError):
        DeviceTreeProperty("reg", [2**32])
    with pytest.raises(ValueError):
        DeviceTreeProperty("reg", [-1])
    assert DeviceTreeProperty("reg", [2**32], PropertyKind.CELLS64).as_cells64() == [2**32]


def test_wrong_value_type_is_rejected():
    with pytest.raises(TypeError):
        DeviceTreeProperty("s", 5, PropertyKind.STRING)
    with pytest.raises(TypeError):
        DeviceTreeProperty("c", "12", PropertyKind.CELLS)


def test_add_property_replaces_same_name():
    node = DeviceTreeNode("n")
    node.add_property(DeviceTreeProperty("status", "okay"))
    node.add_property(DeviceTreeProperty("other", "x"))
    node.add_property(DeviceTreeProperty("status", "disabled"))
    assert [p.name for p in node.properties] == ["other", "status"]
    assert node.find_property("status").value == "disabled"


def test_remove_and_find_property():
    node = DeviceTreeNode("n")
    node.add_property(DeviceTreeProperty("a", "1"))
    node.remove_property("a")
    assert node.find_property("a") is None
    assert node.properties == []


def test_add_child_sets_parent_and_ignores_none():
    parent = DeviceTreeNode("p")
    child = DeviceTreeNode("c")
    parent.add_child(child)
    parent.add_child(None)
    assert parent.children == [child]
    assert child.parent is parent


def test_remove_child():
    parent = DeviceTreeNode("p")
    a, b = DeviceTreeNode("a"), DeviceTreeNode("b")
    parent.add_child(a)
    parent.add_child(b)
    parent.remove_child(a)
    assert parent.children == [b]
    parent.remove_child(DeviceTreeNode("b"))
    assert parent.children == [b]


def test_full_path():
    tree = build_tree()
    assert tree.root.full_path() == "/"
    uart = tree.find_node_by_path("/soc/uart")
    assert uart.full_path() == "/soc/uart"


def test_full_path_round_trips_through_lookup():
    tree = build_tree()
    for node in tree.root.walk():
        assert tree.find_node_by_path(node.full_path()) is node


def test_find_node_by_path_variants():
    tree = build_tree()
    assert tree.find_node_by_path("") is tree.root
    assert tree.find_node_by_path("/") is tree.root
    assert tree.find_node_by_path("cpus/cpu@1").name == "cpu@1"
    assert tree.find_node_by_path("/cpus//cpu@0/").name == "cpu@0"
    assert tree.find_node_by_path("/missing") is None


def test_walk_is_preorder():
    tree = build_tree()
    names = [n.name for n in tree.root.walk()]
    assert names == ["/", "cpus", "cpu@0", "cpu@1", "soc", "uart"]


def test_find_by_name_and_pattern():
    tree = build_tree()
    assert [n.full_path() for n in tree.find_nodes_by_name("uart")] == ["/soc/uart"]
    assert tree.find_nodes_by_name("cpu") == []
    assert [n.name for n in tree.find_nodes_by_pattern("cpu")] == ["cpus", "cpu@0", "cpu@1"]
    assert tree.find_nodes_by_pattern("CPU") == []


def test_tree_without_root():
    tree = DeviceTree(root=None)
    assert tree.find_node_by_path("/") is None
    assert tree.find_nodes_by_name("x") == []
    assert tree.find_nodes_by_pattern("x") == []
    assert tree.export_json() == "{}"
    assert tree.export_yaml() == ""
    assert tree.validate() is False
    assert tree.validation_errors == ["No root node"]


def test_validate():
    tree = build_tree()
    assert tree.validate() is True
    assert tree.validation_errors == []
    empty = DeviceTree()
    assert empty.validate() is False
    assert empty.validation_errors == ["Root node missing 'compatible' property"]


def test_export_json_round_trip():
    tree = build_tree()
    tree.source_file = "board.dtb"
    doc = json.loads(tree.export_json())
    top = doc["device-tree"]
    assert top["source-file"] == "board.dtb"
    root = top["root-node"]
    assert root["name"] == "/"
    assert root["properties"] == {"compatible": '"acme,board"'}
    soc = root["children"][1]
    uart = soc["children"][0]
    assert uart["properties"]["reg"] == [0x1000, 0x100]
    assert uart["properties"]["data"] == [1, 0xFE]
    assert "children" not in uart


def test_export_json_keys_sorted():
    tree = build_tree()
    text = tree.export_json()
    assert text.index('"root-node"') < text.index('"source-file"')


def test_export_yaml_layout():
    tree = build_tree()
    tree.source_file = "board.dts"
    lines = tree.export_yaml().splitlines()
    assert lines[:4] == [
        "device-tree:",
        "  source-file: board.dts",
        "  root-node:",
        "    name: /",
    ]
    assert "      compatible: \"acme,board\"" in lines
    assert "    children:" in lines
    assert "        name: cpus" in lines
    assert any(line.strip() == "reg: [0x1000, 0x100]" for line in lines)
    assert any(line.strip() == "data: [0x01, 0xfe]" for line in lines)


def test_load_from_file_uses_first_matching_parser():
    parsed = build_tree()
    dts = FakeParser(".dts", DeviceTree())
    dtb = FakeParser(".dtb", parsed)
    tree = DeviceTree()
    tree.load_from_file("board.dtb", [dts, dtb])
    assert tree.root is parsed.root
    assert tree.source_file == "board.dtb"
    assert dtb.calls == ["board.dtb"]
    assert dts.calls == []


def test_load_from_file_without_parser_raises():
    tree = DeviceTree()
    with pytest.raises(LoadError):
        tree.load_from_file("board.txt", [FakeParser(".dtb", DeviceTree())])
    assert tree.source_file == ""


def test_load_from_file_parse_failure_raises():
    tree = DeviceTree()
    with pytest.raises(LoadError):
        tree.load_from_file("board.dtb", [FakeParser(".dtb", None)])


def test_parser_is_abstract():
    with pytest.raises(TypeError):
        DeviceTreeParser()