"""
Notekeep - a local note keeper exposed as an MCP server.
Notes can be tagged, color-coded, pinned, archived, trashed and given
image or PDF attachments. Each account gets its own note partition in a
SQLite-backed key/value store.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notekeep")
except PackageNotFoundError:
    __version__ = "0.3.0"
