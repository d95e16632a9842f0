"""Device tree data model: properties, nodes, whole trees and the parser interface."""

from __future__ import annotations

import enum
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple, Union

PropertyValue = Union[str, bytes, Tuple[int, ...]]

_CELL_LIMITS = {"cells": 2**32, "cells64": 2**64}


class PropertyKind(enum.Enum):
    """The kind of value a property holds."""

    STRING = "string"
    BINARY = "binary"
    CELLS = "cells"
    CELLS64 = "cells64"


class LoadError(Exception):
    """Raised when a device tree file cannot be loaded."""


@dataclass(frozen=True)
class DeviceTreeProperty:
    """A named property whose value is a string, raw bytes or a list of cells.

    When ``kind`` is omitted it is inferred: ``str`` is a string, ``bytes`` is
    binary and any other sequence of integers is 32-bit cells.
    """

    name: str = ""
    value: PropertyValue = ""
    kind: Optional[PropertyKind] = None

    def __post_init__(self) -> None:
        kind = self.kind
        value = self.value
        if kind is None:
            if isinstance(value, str):
                kind = PropertyKind.STRING
            elif isinstance(value, (bytes, bytearray)):
                kind = PropertyKind.BINARY
            else:
                kind = PropertyKind.CELLS

        if kind is PropertyKind.STRING:
            if not isinstance(value, str):
                raise TypeError(f"string property {self.name!r} needs a str value")
        elif kind is PropertyKind.BINARY:
            if isinstance(value, str):
                raise TypeError(f"binary property {self.name!r} needs bytes")
            value = bytes(value)
        else:
            if isinstance(value, (str, bytes, bytearray)):
                raise TypeError(f"cell property {self.name!r} needs a sequence of integers")
            value = tuple(int(cell) for cell in value)
            limit = _CELL_LIMITS[kind.value]
            for cell in value:
                if not 0 <= cell < limit:
                    raise ValueError(
                        f"cell value {cell} out of range for {kind.value} property {self.name!r}"
                    )

        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", value)

    def value_as_string(self) -> str:
        """Render the value the way device tree source shows it."""
        if self.kind is PropertyKind.STRING:
            return f'"{self.value}"'
        if self.kind is PropertyKind.BINARY:
            return "[" + " ".join(f"0x{byte:02x}" for byte in self.value) + "]"
        return "<" + " ".join(f"0x{cell:x}" for cell in self.value) + ">"

    def as_binary(self) -> bytes:
        """The value as bytes, or empty bytes if the property is not binary."""
        return self.value if self.kind is PropertyKind.BINARY else b""

    def as_cells(self) -> List[int]:
        """The value as 32-bit cells, or an empty list for other kinds."""
        return list(self.value) if self.kind is PropertyKind.CELLS else []

    def as_cells64(self) -> List[int]:
        """The value as 64-bit cells, or an empty list for other kinds."""
        return list(self.value) if self.kind is PropertyKind.CELLS64 else []


class DeviceTreeNode:
    """A node with a name, a parent, ordered children and ordered properties."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.parent: Optional[DeviceTreeNode] = None
        self.children: List[DeviceTreeNode] = []
        self.properties: List[DeviceTreeProperty] = []

    def __repr__(self) -> str:
        return f"DeviceTreeNode({self.name!r})"

    def add_child(self, child: Optional[DeviceTreeNode]) -> None:
        """Append a child and make this node its parent; ``None`` is ignored."""
        if child is None:
            return
        child.parent = self
        self.children.append(child)

    def remove_child(self, child: DeviceTreeNode) -> None:
        """Remove the given child node, if it is one of this node's children."""
        for position, candidate in enumerate(self.children):
            if candidate is child:
                del self.children[position]
                child.parent = None
                return

    def add_property(self, prop: DeviceTreeProperty) -> None:
        """Add a property, replacing any existing one with the same name."""
        self.remove_property(prop.name)
        self.properties.append(prop)

    def remove_property(self, name: str) -> None:
        """Remove every property with the given name."""
        self.properties = [prop for prop in self.properties if prop.name != name]

    def find_property(self, name: str) -> Optional[DeviceTreeProperty]:
        """Return the first property with the given name, or ``None``."""
        return next((prop for prop in self.properties if prop.name == name), None)

    def full_path(self) -> str:
        """The absolute path of this node, such as ``/soc/uart``."""
        components = []
        node: Optional[DeviceTreeNode] = self
        while node is not None:
            if node.name != "/":
                components.append(node.name)
            node = node.parent
        return "/" + "/".join(reversed(components))

    def find_node_by_path(self, path: str) -> Optional[DeviceTreeNode]:
        """Follow a slash-separated path of child names from this node."""
        current: DeviceTreeNode = self
        for component in path.split("/"):
            if not component:
                continue
            match = next((c for c in current.children if c.name == component), None)
            if match is None:
                return None
            current = match
        return current

    def find_nodes_by_name(self, name: str) -> List[DeviceTreeNode]:
        """All nodes in this subtree, in pre-order, whose name equals ``name``."""
        return [node for node in self.walk() if node.name == name]

    def find_nodes_by_pattern(self, pattern: str) -> List[DeviceTreeNode]:
        """All nodes in this subtree, in pre-order, whose name contains ``pattern``."""
        return [node for node in self.walk() if pattern in node.name]

    def walk(self) -> Iterator[DeviceTreeNode]:
        """Yield this node and all its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class DeviceTreeParser(ABC):
    """Interface of a reader that turns a file into a :class:`DeviceTree`."""

    @abstractmethod
    def parse(self, filename: str) -> Optional[DeviceTree]:
        """Read ``filename`` and return the tree, or ``None`` on failure."""

    @abstractmethod
    def can_parse(self, filename: str) -> bool:
        """Whether this parser handles ``filename``."""


@dataclass
class DeviceTree:
    """A whole device tree with the file it was loaded from."""

    root: Optional[DeviceTreeNode] = field(default_factory=lambda: DeviceTreeNode("/"))
    source_file: str = ""
    validation_errors: List[str] = field(default_factory=list)

    def load_from_file(self, filename: str, parsers: Iterable[DeviceTreeParser]) -> None:
        """Load ``filename`` with the first parser that accepts it."""
        parser = next((p for p in parsers if p.can_parse(filename)), None)
        if parser is None:
            raise LoadError(f"no parser for {filename}")
        parsed = parser.parse(filename)
        if parsed is None:
            raise LoadError(f"failed to parse {filename}")
        self.root = parsed.root
        self.source_file = filename

    def validate(self) -> bool:
        """Check the tree, filling ``validation_errors``; True when it is valid."""
        self.validation_errors = []
        if self.root is None:
            self.validation_errors.append("No root node")
            return False
        if self.root.find_property("compatible") is None:
            self.validation_errors.append("Root node missing 'compatible' property")
        return not self.validation_errors

    def export_json(self) -> str:
        """The tree as pretty-printed JSON with sorted keys."""
        if self.root is None:
            return "{}"
        document = {
            "device-tree": {
                "source-file": self.source_file,
                "root-node": _node_to_json(self.root),
            }
        }
        return json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False)

    def export_yaml(self) -> str:
        """The tree as YAML text."""
        if self.root is None:
            return ""
        lines = [
            "device-tree:",
            f"  source-file: {self.source_file}",
            "  root-node:",
        ]
        lines.extend(_node_yaml_lines(self.root, 2))
        return "\n".join(lines) + "\n"

    def find_node_by_path(self, path: str) -> Optional[DeviceTreeNode]:
        """Look a node up by its absolute path."""
        return None if self.root is None else self.root.find_node_by_path(path)

    def find_nodes_by_name(self, name: str) -> List[DeviceTreeNode]:
        """All nodes named exactly ``name``."""
        return [] if self.root is None else self.root.find_nodes_by_name(name)

    def find_nodes_by_pattern(self, pattern: str) -> List[DeviceTreeNode]:
        """All nodes whose name contains ``pattern``."""
        return [] if self.root is None else self.root.find_nodes_by_pattern(pattern)


def _node_to_json(node: DeviceTreeNode) -> dict:
    properties = {}
    for prop in node.properties:
        if prop.kind is PropertyKind.CELLS:
            properties[prop.name] = prop.as_cells()
        elif prop.kind is PropertyKind.BINARY:
            properties[prop.name] = list(prop.as_binary())
        else:
            properties[prop.name] = prop.value_as_string()
    result = {"name": node.name, "properties": properties}
    if node.children:
        result["children"] = [_node_to_json(child) for child in node.children]
    return result


def _yaml_value(prop: DeviceTreeProperty) -> str:
    if prop.kind is PropertyKind.STRING:
        return prop.value_as_string()
    if prop.kind is PropertyKind.CELLS:
        return "[" + ", ".join(f"0x{cell:x}" for cell in prop.value) + "]"
    if prop.kind is PropertyKind.BINARY:
        return "[" + ", ".join(f"0x{byte:02x}" for byte in prop.value) + "]"
    return f'"{prop.value_as_string()}"'


def _node_yaml_lines(node: DeviceTreeNode, indent: int) -> Iterator[str]:
    pad = " " * (indent * 2)
    yield f"{pad}name: {node.name}"
    if node.properties:
        yield f"{pad}properties:"
        for prop in node.properties:
            yield f"{pad}  {prop.name}: {_yaml_value(prop)}"
    if node.children:
        yield f"{pad}children:"
        for child in node.children:
            yield f"{pad}  -"
            yield from _node_yaml_lines(child, indent + 2)