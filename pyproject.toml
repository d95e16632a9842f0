[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dtexplorer"
version = "1.0.0"
description = "Device tree model with validation, search, JSON/YAML export and tree comparison"
requires-python = ">=3.10"
dependencies = []
keywords = ["device-tree", "dtb", "dts", "embedded", "diff", "linux"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dte-cli = "dtexplorer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dtexplorer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
