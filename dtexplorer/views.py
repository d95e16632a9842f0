"""Table models behind the diff viewer and the property editor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from .diff import DeviceTreeDiff, DiffEntry, DiffType
from .tree import DeviceTreeNode, DeviceTreeProperty, PropertyKind

Color = Tuple[int, int, int]

_TYPE_LABELS = {
    DiffType.ADDED: ("Added", (0, 128, 0)),
    DiffType.REMOVED: ("Removed", (128, 0, 0)),
    DiffType.MODIFIED: ("Modified", (128, 128, 0)),
}
_UNKNOWN_LABEL = ("Unknown", (128, 128, 128))

_KIND_NAMES = {
    PropertyKind.STRING: "String",
    PropertyKind.BINARY: "Binary",
    PropertyKind.CELLS: "Cells",
    PropertyKind.CELLS64: "Cells64",
}


@dataclass(frozen=True)
class DiffRow:
    """One displayed line of the diff table."""

    type: DiffType
    type_label: str
    color: Color
    path: str
    property_name: str
    description: str

    @classmethod
    def from_entry(cls, entry: DiffEntry) -> "DiffRow":
        label, color = _TYPE_LABELS.get(entry.type, _UNKNOWN_LABEL)
        return cls(
            type=entry.type,
            type_label=label,
            color=color,
            path=entry.path,
            property_name=entry.property_name,
            description=entry.description,
        )


class DiffTableModel:
    """Holds a diff and produces filtered rows, a summary line and exports."""

    def __init__(self) -> None:
        self.diff: Optional[DeviceTreeDiff] = None

    def set_diff(self, diff: DeviceTreeDiff) -> None:
        """Show ``diff``."""
        self.diff = diff

    def clear(self) -> None:
        """Show nothing."""
        self.diff = None

    def rows(
        self, type_filter: Optional[DiffType] = None, path_filter: str = ""
    ) -> List[DiffRow]:
        """Rows of the diff, optionally limited to one type and to paths
        containing ``path_filter`` (case-insensitive)."""
        if self.diff is None:
            return []
        needle = path_filter.casefold()
        return [
            DiffRow.from_entry(entry)
            for entry in self.diff.generate_diff()
            if (type_filter is None or entry.type is type_filter)
            and (not needle or needle in entry.path.casefold())
        ]

    def stats_text(self) -> str:
        """One-line summary of the diff, or an empty string when cleared."""
        if self.diff is None:
            return ""
        return (
            f"Total changes: {self.diff.total_changes()} | "
            f"Added: {self.diff.added_count()} | "
            f"Removed: {self.diff.removed_count()} | "
            f"Modified: {self.diff.modified_count()}"
        )

    def export(self, filename: Union[str, Path]) -> None:
        """Write the diff to ``filename``; the format follows its extension:
        JSON for .json, YAML for .yaml or .yml, a patch text otherwise."""
        diff = self.diff if self.diff is not None else DeviceTreeDiff(None, None)
        name = str(filename)
        if name.endswith(".json"):
            content = diff.export_json()
        elif name.endswith((".yaml", ".yml")):
            content = diff.export_yaml()
        else:
            content = diff.export_patch()
        Path(filename).write_text(content, encoding="utf-8")


def property_type_name(prop: DeviceTreeProperty) -> str:
    """The display name of a property's value kind."""
    return _KIND_NAMES.get(prop.kind, "Unknown")


@dataclass(frozen=True)
class PropertyRow:
    """One displayed line of the property table."""

    name: str
    type_name: str
    value: str


PropertyChanged = Callable[[str, str], None]


class PropertyTableModel:
    """Lists the properties of one node and reports edits of their values."""

    def __init__(self, on_property_changed: Optional[PropertyChanged] = None) -> None:
        self.node: Optional[DeviceTreeNode] = None
        self.on_property_changed = on_property_changed
        self._rows: List[PropertyRow] = []

    def set_node(self, node: Optional[DeviceTreeNode]) -> None:
        """Show the properties of ``node``."""
        self.node = node
        self._rows = (
            []
            if node is None
            else [
                PropertyRow(prop.name, property_type_name(prop), prop.value_as_string())
                for prop in node.properties
            ]
        )

    def clear(self) -> None:
        """Show no node."""
        self.set_node(None)

    def rows(self) -> List[PropertyRow]:
        """The rows currently shown."""
        return list(self._rows)

    def edit_value(self, row: int, new_value: str) -> Tuple[str, str]:
        """Record an edit of the value in ``row`` and notify the listener.

        Returns the property name and the new value.
        """
        if self.node is None:
            raise IndexError("no node is shown")
        if not 0 <= row < len(self._rows):
            raise IndexError(f"row {row} out of range")
        old = self._rows[row]
        self._rows[row] = PropertyRow(old.name, old.type_name, new_value)
        if self.on_property_changed is not None:
            self.on_property_changed(old.name, new_value)
        return old.name, new_value