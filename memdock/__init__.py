"""
memdock - build, run and wire up a containerised MCP memory service.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("memdock")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["__version__"]
