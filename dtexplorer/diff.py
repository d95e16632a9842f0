"""Comparison of two device trees and export of the differences."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .tree import DeviceTree, DeviceTreeNode, DeviceTreeProperty


class DiffType(enum.Enum):
    """The kind of change a diff entry describes."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffEntry:
    """One change: a node or, when ``property_name`` is set, a property."""

    type: DiffType
    path: str
    property_name: str = ""
    old_value: str = ""
    new_value: str = ""
    description: str = ""

    @property
    def is_node_change(self) -> bool:
        """True when the entry concerns a whole node rather than a property."""
        return not self.property_name


def _child_path(path: str, name: str) -> str:
    return path + "/" + name


def _properties_equal(first: DeviceTreeProperty, second: DeviceTreeProperty) -> bool:
    return first.kind is second.kind and first.value == second.value


class DeviceTreeDiff:
    """Differences between a base tree and an overlay tree.

    The diff is computed on first use and cached.
    """

    def __init__(self, base: Optional[DeviceTree], overlay: Optional[DeviceTree]) -> None:
        self.base = base
        self.overlay = overlay
        self._cache: Optional[List[DiffEntry]] = None

    def generate_diff(self) -> List[DiffEntry]:
        """All changes, in traversal order."""
        if self._cache is None:
            if not self.is_valid():
                return []
            self._cache = list(self._compare_nodes(self.base.root, self.overlay.root, "/"))
        return list(self._cache)

    def added_nodes(self) -> List[DiffEntry]:
        """Entries for nodes present only in the overlay."""
        return [e for e in self.generate_diff() if e.type is DiffType.ADDED and e.is_node_change]

    def removed_nodes(self) -> List[DiffEntry]:
        """Entries for nodes present only in the base."""
        return [e for e in self.generate_diff() if e.type is DiffType.REMOVED and e.is_node_change]

    def modified_properties(self) -> List[DiffEntry]:
        """Entries for properties whose value changed."""
        return [
            e for e in self.generate_diff() if e.type is DiffType.MODIFIED and not e.is_node_change
        ]

    def total_changes(self) -> int:
        """Number of entries in the diff."""
        return len(self.generate_diff())

    def added_count(self) -> int:
        """Number of added nodes."""
        return len(self.added_nodes())

    def removed_count(self) -> int:
        """Number of removed nodes."""
        return len(self.removed_nodes())

    def modified_count(self) -> int:
        """Number of modified properties."""
        return len(self.modified_properties())

    def export_json(self) -> str:
        """The diff and its summary as JSON."""
        changes = []
        for entry in self.generate_diff():
            item: Dict[str, str] = {"type": entry.type.value, "path": entry.path}
            if entry.property_name:
                item["property"] = entry.property_name
            if entry.old_value:
                item["old_value"] = entry.old_value
            if entry.new_value:
                item["new_value"] = entry.new_value
            item["description"] = entry.description
            changes.append(item)
        document = {
            "diff": {
                "total_changes": len(changes),
                "added": self.added_count(),
                "removed": self.removed_count(),
                "modified": self.modified_count(),
                "changes": changes,
            }
        }
        return json.dumps(document, indent=2, ensure_ascii=False) + "\n"

    def export_yaml(self) -> str:
        """The diff and its summary as YAML."""
        diff = self.generate_diff()
        lines = [
            "diff:",
            f"  total_changes: {len(diff)}",
            f"  added: {self.added_count()}",
            f"  removed: {self.removed_count()}",
            f"  modified: {self.modified_count()}",
            "  changes:",
        ]
        for entry in diff:
            lines.append(f"    - type: {entry.type.value}")
            lines.append(f"      path: {entry.path}")
            if entry.property_name:
                lines.append(f"      property: {entry.property_name}")
            if entry.old_value:
                lines.append(f"      old_value: {entry.old_value}")
            if entry.new_value:
                lines.append(f"      new_value: {entry.new_value}")
            lines.append(f"      description: {entry.description}")
        return "\n".join(lines) + "\n"

    def export_patch(self) -> str:
        """The diff as a readable patch-like text."""
        diff = self.generate_diff()
        markers = {DiffType.ADDED: "+", DiffType.REMOVED: "-"}
        lines = [
            "--- Device Tree Diff ---",
            f"Total changes: {len(diff)}",
            f"Added: {self.added_count()}, Removed: {self.removed_count()}, "
            f"Modified: {self.modified_count()}",
            "",
        ]
        for entry in diff:
            target = entry.path
            if entry.property_name:
                target += ":" + entry.property_name
            lines.append(f"[{markers.get(entry.type, '~')}] {target}")
            if entry.type is DiffType.MODIFIED:
                lines.append(f"  - {entry.old_value}")
                lines.append(f"  + {entry.new_value}")
            elif entry.type is DiffType.ADDED:
                lines.append(f"  + {entry.new_value}")
            elif entry.type is DiffType.REMOVED:
                lines.append(f"  - {entry.old_value}")
            lines.append("")
        return "\n".join(lines) + "\n"

    def is_valid(self) -> bool:
        """Whether both trees are present."""
        return self.base is not None and self.overlay is not None

    def validation_errors(self) -> List[str]:
        """Reasons the diff cannot be computed."""
        errors = []
        if self.base is None:
            errors.append("Base device tree is null")
        if self.overlay is None:
            errors.append("Overlay device tree is null")
        return errors

    def _compare_nodes(
        self,
        base: Optional[DeviceTreeNode],
        overlay: Optional[DeviceTreeNode],
        path: str,
    ) -> Iterator[DiffEntry]:
        if base is None and overlay is None:
            return
        if base is None:
            yield DiffEntry(DiffType.ADDED, path, description=f"Node added: {overlay.name}")
            for child in overlay.children:
                yield from self._compare_nodes(None, child, _child_path(path, child.name))
            return
        if overlay is None:
            yield DiffEntry(DiffType.REMOVED, path, description=f"Node removed: {base.name}")
            for child in base.children:
                yield from self._compare_nodes(child, None, _child_path(path, child.name))
            return

        yield from self._compare_properties(base, overlay, path)

        base_children = {child.name: child for child in base.children}
        overlay_children = {child.name: child for child in overlay.children}
        for name in sorted(overlay_children):
            yield from self._compare_nodes(
                base_children.get(name), overlay_children[name], _child_path(path, name)
            )
        for name in sorted(base_children):
            if name not in overlay_children:
                yield from self._compare_nodes(base_children[name], None, _child_path(path, name))

    @staticmethod
    def _compare_properties(
        base: DeviceTreeNode, overlay: DeviceTreeNode, path: str
    ) -> Iterator[DiffEntry]:
        base_props = {prop.name: prop for prop in base.properties}
        overlay_props = {prop.name: prop for prop in overlay.properties}
        for name in sorted(overlay_props):
            new = overlay_props[name]
            old = base_props.get(name)
            if old is None:
                yield DiffEntry(
                    DiffType.ADDED,
                    path,
                    name,
                    new_value=new.value_as_string(),
                    description=f"Property added: {name}",
                )
            elif not _properties_equal(old, new):
                yield DiffEntry(
                    DiffType.MODIFIED,
                    path,
                    name,
                    old_value=old.value_as_string(),
                    new_value=new.value_as_string(),
                    description=f"Property modified: {name}",
                )
        for name in sorted(base_props):
            if name not in overlay_props:
                yield DiffEntry(
                    DiffType.REMOVED,
                    path,
                    name,
                    old_value=base_props[name].value_as_string(),
                    description=f"Property removed: {name}",
                )