"""Command-line front end for inspecting, validating, diffing and exporting device trees."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .diff import DeviceTreeDiff, DiffType
from .tree import DeviceTree, DeviceTreeNode, DeviceTreeParser, LoadError

VERSION = "1.0.0"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

_RESET = "\033[0m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_BLUE = "\033[34m"
_CYAN = "\033[36m"
_BOLD = "\033[1m"

_DIFF_LABELS = {
    DiffType.ADDED: ("[ADD]", _GREEN),
    DiffType.REMOVED: ("[DEL]", _RED),
    DiffType.MODIFIED: ("[MOD]", _YELLOW),
}

Handler = Callable[[List[str]], int]
Converter = Callable[[str, str, str, str], bool]


@dataclass
class CLICommand:
    """A named sub-command with its help text and the function that runs it."""

    name: str
    description: str
    usage: str
    handler: Handler


def format_bytes(size: int) -> str:
    """Human-readable size with one decimal, in B, KB, MB or GB."""
    units = ("B", "KB", "MB", "GB")
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(units) - 1:
        value /= 1024.0
        unit += 1
    return f"{value:.1f} {units[unit]}"


def file_extension(filename: str) -> str:
    """The text after the last dot of ``filename``, or an empty string."""
    _, dot, extension = filename.rpartition(".")
    return extension if dot else ""


def _dtc_convert(input_file: str, output_file: str, input_format: str, output_format: str) -> bool:
    """Convert between DTB and DTS with the ``dtc`` tool, if it is installed."""
    dtc = shutil.which("dtc")
    if dtc is None:
        return False
    completed = subprocess.run(
        [dtc, "-I", input_format, "-O", output_format, "-o", output_file, input_file],
        capture_output=True,
        check=False,
    )
    return completed.returncode == 0


class CLIApp:
    """The command dispatcher; ``run`` returns a process exit status."""

    def __init__(
        self,
        program_name: str = "dte-cli",
        parsers: Iterable[DeviceTreeParser] = (),
        converter: Optional[Converter] = None,
        color: Optional[bool] = None,
    ) -> None:
        self.program_name = program_name
        self.parsers = list(parsers)
        self.converter: Converter = converter if converter is not None else _dtc_convert
        self._color = color
        self.device_tree: Optional[DeviceTree] = None
        self.commands: Dict[str, CLICommand] = {
            command.name: command
            for command in sorted(self._build_commands(), key=lambda c: c.name)
        }

    def _build_commands(self) -> List[CLICommand]:
        return [
            CLICommand("info", "Display information about a device tree file",
                       "info <filename>", self._handle_info),
            CLICommand("validate", "Validate a device tree file",
                       "validate <filename>", self._handle_validate),
            CLICommand("diff", "Compare two device tree files",
                       "diff <base_file> <overlay_file>", self._handle_diff),
            CLICommand("export", "Export device tree to different format",
                       "export <input_file> <format> <output_file>", self._handle_export),
            CLICommand("convert", "Convert between DTB and DTS formats",
                       "convert <input_file> <output_file>", self._handle_convert),
            CLICommand("search", "Search for nodes or properties in device tree",
                       "search <filename> <pattern>", self._handle_search),
            CLICommand("list", "List nodes and properties in device tree",
                       "list <filename> [path]", self._handle_list),
            CLICommand("help", "Show help for a command",
                       "help [command]", self._handle_help),
        ]

    # -- dispatch -----------------------------------------------------------

    def run(self, args: Sequence[str]) -> int:
        """Run the command named by ``args[0]`` with the remaining arguments."""
        args = list(args)
        if not args:
            self._print_usage()
            return EXIT_FAILURE

        command = args[0]
        if command in ("--version", "-v"):
            self._print_version()
            return EXIT_SUCCESS
        if command in ("--help", "-h"):
            self._print_help()
            return EXIT_SUCCESS

        entry = self.commands.get(command)
        if entry is None:
            self._error(f"Unknown command: {command}")
            self._print_usage()
            return EXIT_FAILURE

        try:
            return entry.handler(args[1:])
        except Exception as exc:  # any failure inside a command ends it
            self._error(f"Command failed: {exc}")
            return EXIT_FAILURE

    # -- output helpers -----------------------------------------------------

    @property
    def color(self) -> bool:
        if self._color is None:
            return sys.stdout.isatty()
        return self._color

    def _c(self, code: str, text: object) -> str:
        return f"{code}{text}{_RESET}" if self.color else str(text)

    @staticmethod
    def _out(text: str = "") -> None:
        print(text, file=sys.stdout)

    def _tagged(self, tag: str, code: str, message: str, stream) -> None:
        prefix = f"{code}{_BOLD}{tag}: {_RESET}" if self.color else f"{tag}: "
        print(prefix + message, file=stream)

    def _error(self, message: str) -> None:
        self._tagged("ERROR", _RED, message, sys.stderr)

    def _warning(self, message: str) -> None:
        self._tagged("WARNING", _YELLOW, message, sys.stdout)

    def _success(self, message: str) -> None:
        self._tagged("SUCCESS", _GREEN, message, sys.stdout)

    def _info(self, message: str) -> None:
        self._tagged("INFO", _BLUE, message, sys.stdout)

    def _usage_error(self, name: str) -> int:
        self._error(f"Usage: {self.commands[name].usage}")
        return EXIT_FAILURE

    # -- fixed texts --------------------------------------------------------

    def _print_usage(self) -> None:
        self._out(self._c(_BOLD, "Device Tree Explorer CLI"))
        self._out()
        self._out(f"Usage: {self.program_name} <command> [options]")
        self._out()
        self._out(self._c(_BOLD, "Available commands:"))
        width = max(len(name) for name in self.commands)
        for command in self.commands.values():
            self._out(f"  {command.name:<{width}} {command.description}")
        self._out()
        self._out(f"Use '{self.program_name} help <command>' for detailed help.")
        self._out(f"Use '{self.program_name} --version' to show version information.")

    def _print_version(self) -> None:
        self._out(self._c(_BOLD, f"Device Tree Explorer CLI v{VERSION}"))

    def _print_help(self, command: str = "") -> None:
        if not command:
            self._print_usage()
            return
        entry = self.commands.get(command)
        if entry is None:
            self._error(f"Unknown command: {command}")
            return
        self._out(self._c(_BOLD, "Command: ") + entry.name)
        self._out(self._c(_BOLD, "Description: ") + entry.description)
        self._out(self._c(_BOLD, "Usage: ") + f"{self.program_name} {entry.usage}")
        prog = self.program_name
        if command == "info":
            self._out()
            self._out(self._c(_BOLD, "Examples:"))
            self._out(f"  {prog} info device.dtb")
            self._out(f"  {prog} info /proc/device-tree")
        elif command == "diff":
            self._out()
            self._out(self._c(_BOLD, "Examples:"))
            self._out(f"  {prog} diff base.dtb overlay.dtb")
            self._out(f"  {prog} diff original.dts modified.dts")
        elif command == "export":
            self._out()
            self._out(self._c(_BOLD, "Supported formats:"))
            self._out("  json    - JSON format")
            self._out("  yaml    - YAML format")
            self._out("  dts     - Device Tree Source format")
            self._out("  dtb     - Device Tree Blob format")

    # -- loading ------------------------------------------------------------

    def _read_tree(self, filename: str) -> Optional[DeviceTree]:
        tree = DeviceTree()
        try:
            tree.load_from_file(filename, self.parsers)
        except LoadError:
            return None
        return tree

    def _load_device_tree(self, filename: str) -> bool:
        tree = self._read_tree(filename)
        if tree is None:
            self._error(f"Failed to load device tree file: {filename}")
            self.device_tree = None
            return False
        self.device_tree = tree
        return True

    # -- handlers -----------------------------------------------------------

    def _handle_info(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage_error("info")
        filename = args[0]
        if not os.path.exists(filename):
            self._error(f"File not found: {filename}")
            return EXIT_FAILURE
        self._info(f"Loading device tree from: {filename}")
        if not self._load_device_tree(filename):
            return EXIT_FAILURE
        self._print_device_tree_info()
        return EXIT_SUCCESS

    def _handle_validate(self, args: List[str]) -> int:
        if len(args) != 1:
            return self._usage_error("validate")
        filename = args[0]
        if not os.path.exists(filename):
            self._error(f"File not found: {filename}")
            return EXIT_FAILURE
        self._info(f"Validating device tree: {filename}")
        if not self._load_device_tree(filename):
            return EXIT_FAILURE
        valid = self._print_validation_results()
        return EXIT_SUCCESS if valid else EXIT_FAILURE

    def _handle_diff(self, args: List[str]) -> int:
        if len(args) != 2:
            return self._usage_error("diff")
        base_file, overlay_file = args
        if not os.path.exists(base_file):
            self._error(f"Base file not found: {base_file}")
            return EXIT_FAILURE
        if not os.path.exists(overlay_file):
            self._error(f"Overlay file not found: {overlay_file}")
            return EXIT_FAILURE

        self._info(f"Loading base device tree: {base_file}")
        base = self._read_tree(base_file)
        if base is None:
            self._error(f"Failed to load base file: {base_file}")
            return EXIT_FAILURE

        self._info(f"Loading overlay device tree: {overlay_file}")
        overlay = self._read_tree(overlay_file)
        if overlay is None:
            self._error(f"Failed to load overlay file: {overlay_file}")
            return EXIT_FAILURE

        self._info("Generating diff...")
        diff = DeviceTreeDiff(base, overlay)
        self._print_diff_results(diff)
        return EXIT_SUCCESS if diff.total_changes() > 0 else EXIT_FAILURE

    def _handle_export(self, args: List[str]) -> int:
        if len(args) != 3:
            return self._usage_error("export")
        input_file, fmt, output_file = args
        if not os.path.exists(input_file):
            self._error(f"Input file not found: {input_file}")
            return EXIT_FAILURE
        self._info(f"Loading device tree from: {input_file}")
        if not self._load_device_tree(input_file):
            return EXIT_FAILURE
        self._info(f"Exporting to {fmt} format: {output_file}")

        if fmt == "json":
            content = self.device_tree.export_json()
        elif fmt == "yaml":
            content = self.device_tree.export_yaml()
        else:
            self._error(f"Unsupported format: {fmt}")
            self._info("Supported formats: json, yaml")
            return EXIT_FAILURE

        try:
            with open(output_file, "w", encoding="utf-8") as handle:
                handle.write(content)
        except OSError:
            self._error(f"Failed to open output file: {output_file}")
            return EXIT_FAILURE
        self._success(f"Successfully exported to: {output_file}")
        return EXIT_SUCCESS

    def _handle_convert(self, args: List[str]) -> int:
        if len(args) != 2:
            return self._usage_error("convert")
        input_file, output_file = args
        if not os.path.exists(input_file):
            self._error(f"Input file not found: {input_file}")
            return EXIT_FAILURE

        input_ext = file_extension(input_file)
        output_ext = file_extension(output_file)
        self._info(
            f"Converting {input_ext} to {output_ext}: {input_file} -> {output_file}"
        )
        if (input_ext, output_ext) not in (("dtb", "dts"), ("dts", "dtb")):
            self._error(f"Unsupported conversion: {input_ext} to {output_ext}")
            self._info("Supported conversions: dtb <-> dts")
            return EXIT_FAILURE

        if not self.converter(input_file, output_file, input_ext, output_ext):
            self._error("Conversion failed")
            return EXIT_FAILURE
        self._success(f"Successfully converted: {input_file} -> {output_file}")
        return EXIT_SUCCESS

    def _handle_search(self, args: List[str]) -> int:
        if len(args) != 2:
            return self._usage_error("search")
        filename, pattern = args
        if not os.path.exists(filename):
            self._error(f"File not found: {filename}")
            return EXIT_FAILURE
        self._info(f"Searching for pattern '{pattern}' in: {filename}")
        if not self._load_device_tree(filename):
            return EXIT_FAILURE

        nodes = self.device_tree.find_nodes_by_pattern(pattern)
        self._out(self._c(_BOLD, "Search Results:"))
        self._out(f"Found {self._c(_CYAN, len(nodes))} nodes matching '{pattern}':")
        if not nodes:
            self._warning("No nodes found matching the pattern")
            return EXIT_FAILURE
        for node in nodes:
            self._out("  " + self._c(_GREEN, node.full_path()))
        return EXIT_SUCCESS

    def _handle_list(self, args: List[str]) -> int:
        if not 1 <= len(args) <= 2:
            return self._usage_error("list")
        filename = args[0]
        if not os.path.exists(filename):
            self._error(f"File not found: {filename}")
            return EXIT_FAILURE
        self._info(f"Loading device tree from: {filename}")
        if not self._load_device_tree(filename):
            return EXIT_FAILURE

        target = self.device_tree.root
        if len(args) == 2:
            target = self.device_tree.find_node_by_path(args[1])
            if target is None:
                self._error(f"Node not found: {args[1]}")
                return EXIT_FAILURE

        self._out(self._c(_BOLD, "Device Tree Structure:"))
        self._print_tree(target)
        return EXIT_SUCCESS

    def _handle_help(self, args: List[str]) -> int:
        self._print_help(args[0] if args else "")
        return EXIT_SUCCESS

    # -- reports ------------------------------------------------------------

    def _print_device_tree_info(self) -> None:
        tree = self.device_tree
        if tree is None or tree.root is None:
            return
        self._out(self._c(_BOLD, "Device Tree Information:"))
        self._out("Source file: " + self._c(_CYAN, tree.source_file))
        self._out("Root node: " + self._c(_GREEN, tree.root.name))
        nodes = list(tree.root.walk())
        properties = sum(len(node.properties) for node in nodes)
        self._out("Total nodes: " + self._c(_YELLOW, len(nodes)))
        self._out("Total properties: " + self._c(_YELLOW, properties))
        if os.path.isfile(tree.source_file):
            size = os.path.getsize(tree.source_file)
            self._out("File size: " + self._c(_BLUE, format_bytes(size)))

    def _print_validation_results(self) -> bool:
        tree = self.device_tree
        self._out(self._c(_BOLD, "Validation Results:"))
        if tree.validate():
            self._success("Device tree is valid")
            return True
        self._error("Device tree has validation errors:")
        for error in tree.validation_errors:
            self._out("  " + self._c(_RED, f"• {error}"))
        return False

    def _print_diff_results(self, diff: DeviceTreeDiff) -> None:
        self._out(self._c(_BOLD, "Diff Results:"))
        self._out("Total changes: " + self._c(_YELLOW, diff.total_changes()))
        self._out("Added: " + self._c(_GREEN, diff.added_count()))
        self._out("Removed: " + self._c(_RED, diff.removed_count()))
        self._out("Modified: " + self._c(_YELLOW, diff.modified_count()))

        changes = diff.generate_diff()
        if not changes:
            return
        self._out()
        self._out(self._c(_BOLD, "Detailed Changes:"))
        for change in changes:
            label, code = _DIFF_LABELS.get(change.type, ("[UNK]", _RESET))
            line = f"  {self._c(code, label)} {change.path}"
            if change.property_name:
                line += ":" + self._c(_CYAN, change.property_name)
            self._out(f"{line} - {change.description}")

    def _print_tree(self, node: Optional[DeviceTreeNode], prefix: str = "") -> None:
        if node is None:
            return
        self._out(prefix + self._c(_GREEN, node.name))
        for prop in node.properties:
            self._out(
                f"{prefix}  {self._c(_CYAN, prop.name)} = "
                f"{self._c(_YELLOW, prop.value_as_string())}"
            )
        for child in node.children:
            self._print_tree(child, prefix + "  ")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point: run the CLI on ``argv`` (default ``sys.argv[1:]``)."""
    args = list(sys.argv[1:] if argv is None else argv)
    program = os.path.basename(sys.argv[0]) if sys.argv and sys.argv[0] else "dte-cli"
    try:
        return CLIApp(program_name=program).run(args)
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())