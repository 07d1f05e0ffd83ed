"""Interactive git staging engine: diff parsing, patch synthesis and status rendering."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("hunkline")
except PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.0.0-dev"
