"""Utility functions for the Notekeep server."""
from typing import List, Optional


def parse_tags(text: Optional[str]) -> List[str]:
    """Split a comma-separated tag field into tags.

    Whitespace around each tag is stripped and empty entries are dropped.
    Duplicates are kept as typed.

    Examples:
        "work, ideas , ,todo" -> ["work", "ideas", "todo"]
    """
    if not text:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]


def format_file_size(size: int) -> str:
    """Human-readable byte count.

    Examples:
        >>> format_file_size(512)
        '512 B'
        >>> format_file_size(2048)
        '2.0 KB'
        >>> format_file_size(3 * 1024 * 1024)
        '3.0 MB'
    """
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"
