"""Readable reports, statistics and filters over a device tree diff."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .diff import DeviceTreeDiff, DiffEntry, DiffType

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"

_LABELS = {DiffType.ADDED: "[ADD]", DiffType.REMOVED: "[DEL]", DiffType.MODIFIED: "[MOD]"}
_COLORS = {DiffType.ADDED: _GREEN, DiffType.REMOVED: _RED, DiffType.MODIFIED: _YELLOW}


@dataclass(frozen=True)
class DiffStats:
    """Counts of each kind of change in a diff."""

    total_changes: int = 0
    added_nodes: int = 0
    removed_nodes: int = 0
    modified_properties: int = 0
    added_properties: int = 0
    removed_properties: int = 0


class DiffVisualizer:
    """Presents a :class:`DeviceTreeDiff` for display."""

    def __init__(self, diff: DeviceTreeDiff) -> None:
        self.diff = diff
        self._stats: Optional[DiffStats] = None

    def formatted_diff(self) -> str:
        """A plain-text report of the diff."""
        return self._render(colored=False)

    def colored_diff(self) -> str:
        """The report with ANSI colour codes."""
        return self._render(colored=True)

    def stats(self) -> DiffStats:
        """Counts of node and property changes; computed once."""
        if self._stats is None:
            self._stats = self._calculate_stats()
        return self._stats

    def filter_by_type(self, diff_type: DiffType) -> List[DiffEntry]:
        """Entries of the given type."""
        return [e for e in self.diff.generate_diff() if e.type is diff_type]

    def filter_by_path(self, path_pattern: str) -> List[DiffEntry]:
        """Entries whose path contains ``path_pattern``."""
        return [e for e in self.diff.generate_diff() if path_pattern in e.path]

    def filter_by_property(self, property_pattern: str) -> List[DiffEntry]:
        """Entries whose property name contains ``property_pattern``."""
        return [e for e in self.diff.generate_diff() if property_pattern in e.property_name]

    def _calculate_stats(self) -> DiffStats:
        entries = self.diff.generate_diff()

        def count(diff_type: DiffType, node_change: bool) -> int:
            return sum(
                1 for e in entries if e.type is diff_type and e.is_node_change == node_change
            )

        return DiffStats(
            total_changes=len(entries),
            added_nodes=count(DiffType.ADDED, True),
            removed_nodes=count(DiffType.REMOVED, True),
            modified_properties=count(DiffType.MODIFIED, False),
            added_properties=count(DiffType.ADDED, False),
            removed_properties=count(DiffType.REMOVED, False),
        )

    def _render(self, colored: bool) -> str:
        def bold(text: str) -> str:
            return f"{_BOLD}{text}{_RESET}" if colored else text

        def tint(color: str, text: str) -> str:
            return f"{color}{text}{_RESET}" if colored else text

        stats = self.stats()
        lines = [
            bold("Device Tree Diff Report"),
            "=======================",
            "",
            bold("Summary:"),
            f"  Total changes: {stats.total_changes}",
            f"  Added nodes: {stats.added_nodes}",
            f"  Removed nodes: {stats.removed_nodes}",
            f"  Modified properties: {stats.modified_properties}",
            f"  Added properties: {stats.added_properties}",
            f"  Removed properties: {stats.removed_properties}",
            "",
            bold("Detailed Changes:"),
            "=================",
            "",
        ]
        for entry in self.diff.generate_diff():
            label = tint(_COLORS.get(entry.type, _RESET), _LABELS.get(entry.type, "[UNK]"))
            target = entry.path
            if entry.property_name:
                target += ":" + entry.property_name
            lines.append(f"{label} {target}")
            lines.append(f"    {entry.description}")
            if entry.type is DiffType.MODIFIED:
                lines.append(tint(_RED, f"    Old: {entry.old_value}"))
                lines.append(tint(_GREEN, f"    New: {entry.new_value}"))
            elif entry.type is DiffType.ADDED:
                lines.append(tint(_GREEN, f"    Value: {entry.new_value}"))
            elif entry.type is DiffType.REMOVED:
                lines.append(tint(_RED, f"    Value: {entry.old_value}"))
            lines.append("")
        return "\n".join(lines) + "\n"