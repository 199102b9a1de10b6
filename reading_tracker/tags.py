# reading_tracker/tags.py
"""Parsing for the comma-joined tag column."""
from typing import Iterable, List, Optional


def clean_tag(tag: Optional[str]) -> str:
    return tag.strip().lower() if tag else ""


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-joined tag string into trimmed, lowercase, unique tags.

    Order of first appearance is kept. ``None`` and blank strings give ``[]``.
    """
    if not raw:
        return []
    tags = []
    for part in raw.split(","):
        tag = clean_tag(part)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def join_tags(tags: Iterable[str]) -> Optional[str]:
    joined = ",".join(tags)
    return joined or None
