"""datasync - Versioned dataset stores with chunked snapshot synchronization."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("datasync")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
