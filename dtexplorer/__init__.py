"""Device tree model, validation, search, export, diff and command-line tools."""

__version__ = "1.0.0"
__all__ = ["__version__"]