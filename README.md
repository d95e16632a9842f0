# dtexplorer

Tools for working with device trees: an in-memory tree model, validation,
search, JSON/YAML export, a diff engine that reports added, removed and
modified nodes and properties between two trees, and a command-line front
end.

## Installing

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What it does not do

- **No built-in file readers.** The package defines the `DeviceTreeParser`
  interface but ships no DTB or DTS parser. Trees are either built in code
  or loaded through parsers you supply. The `dte-cli` command is started
  with no parsers, so its commands that read a tree (`info`, `validate`,
  `diff`, `export`, `search`, `list`) report
  `Failed to load device tree file` for any existing file. To use them,
  create `dtexplorer.cli.CLIApp(parsers=[...])` with your own parsers and
  call its `run` method.
- **No saving as DTS or DTB.** Trees can only be written out as JSON or
  YAML text.
- **No DTB/DTS conversion of its own.** `convert` runs the external `dtc`
  program if it is on the `PATH`, and fails otherwise.
- **No graphical interface.** `dtexplorer.views` provides table models only.

## Command line

Installing the package provides the `dte-cli` command:

```
dte-cli <command> [options]
```

| Command | Usage | What it does |
|---|---|---|
| `info` | `info <filename>` | Shows the source file, root node name, node and property counts and file size |
| `validate` | `validate <filename>` | Checks the tree; exits 1 when errors are found |
| `diff` | `diff <base_file> <overlay_file>` | Compares two trees and lists every change; exits 1 when there are none |
| `export` | `export <input_file> <format> <output_file>` | Writes the tree as `json` or `yaml` |
| `convert` | `convert <input_file> <output_file>` | Converts `.dtb` to `.dts` or back, chosen by file extension |
| `search` | `search <filename> <pattern>` | Lists full paths of nodes whose name contains the pattern; exits 1 when none match |
| `list` | `list <filename> [path]` | Prints the tree, or the subtree at `path`, with its properties |
| `help` | `help [command]` | Shows general help or help for one command |

`dte-cli --version` (or `-v`) prints the version and `dte-cli --help` (or
`-h`) the command list. Output is coloured when standard output is a
terminal.

From Python, `CLIApp` accepts `program_name`, `parsers`, `converter` (a
function `(input_file, output_file, input_format, output_format) -> bool`
used by `convert` in place of `dtc`) and `color` (force colour on or off):

```python
from dtexplorer.cli import CLIApp

app = CLIApp(parsers=[MyDtbParser()], color=False)
status = app.run(["list", "board.dtb", "/soc"])
```

## Library

The model lives in `dtexplorer.tree`:

```python
from dtexplorer.tree import DeviceTree, DeviceTreeNode, DeviceTreeProperty, PropertyKind

tree = DeviceTree()
soc = DeviceTreeNode("soc")
tree.root.add_child(soc)
soc.add_property(DeviceTreeProperty("compatible", "simple-bus"))
soc.add_property(DeviceTreeProperty("reg", (0x1000, 0x100)))
soc.add_property(DeviceTreeProperty("ranges64", (1 << 40,), PropertyKind.CELLS64))

print(soc.full_path())                       # /soc
print(tree.find_node_by_path("/soc") is soc) # True
print(soc.find_property("reg").value_as_string())  # <0x1000 0x100>
print(tree.validate())                       # False: root has no 'compatible'
print(tree.validation_errors)
print(tree.export_json())
print(tree.export_yaml())
```

A `DeviceTreeProperty` holds a string, bytes, or 32- or 64-bit cells; the
kind is inferred when not given, and out-of-range cells raise `ValueError`.
`DeviceTreeNode.walk` yields a subtree in pre-order, and
`find_nodes_by_name` / `find_nodes_by_pattern` search by exact name or
substring.

`DeviceTree.load_from_file(filename, parsers)` uses the first parser whose
`can_parse` accepts the file and raises `LoadError` when none does or when
parsing returns `None`. A parser subclasses `DeviceTreeParser`:

```python
from dtexplorer.tree import DeviceTreeParser

class MyDtbParser(DeviceTreeParser):
    def can_parse(self, filename):
        return filename.endswith(".dtb")

    def parse(self, filename):
        ...  # return a DeviceTree, or None on failure
```

Comparing two trees uses `dtexplorer.diff`:

```python
from dtexplorer.diff import DeviceTreeDiff, DiffType
from dtexplorer.visualizer import DiffVisualizer

diff = DeviceTreeDiff(base_tree, overlay_tree)
for entry in diff.generate_diff():
    print(entry.type, entry.path, entry.property_name, entry.description)

print(diff.added_count(), diff.removed_count(), diff.modified_count())
print(diff.export_patch())

view = DiffVisualizer(diff)
print(view.formatted_diff())
print(view.stats())
print(view.filter_by_type(DiffType.MODIFIED))
```

`DeviceTreeDiff` also exports to JSON (`export_json`) and YAML
(`export_yaml`); `is_valid` and `validation_errors` report a missing tree.
`DiffVisualizer` gives a plain or ANSI-coloured report, `DiffStats` counts,
and filters by type, path substring or property-name substring.

`dtexplorer.views` holds display-independent table models:
`DiffTableModel` for diff rows filtered by type and case-insensitive path,
a one-line summary (`stats_text`) and `export` to a file whose format
follows its extension (`.json`, `.yaml`/`.yml`, otherwise patch text); and
`PropertyTableModel` for a node's properties with their type names, whose
`edit_value` calls an optional `on_property_changed(name, value)` listener.