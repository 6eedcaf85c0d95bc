"""
utils/tag_utils.py

Purpose: Comma-delimited tag lists

Tags are stored as delimited strings; these helpers treat them as
ordered sets (case-insensitive, first spelling wins).
"""

from typing import Iterable, List, Optional, Union

TagInput = Optional[Union[str, Iterable[str]]]


def split_tags(tags: TagInput) -> List[str]:
    """
    Splits a comma-joined tag string (or list of tags) into clean tags.
    """
    if not tags:
        return []
    if isinstance(tags, str):
        parts = tags.split(",")
    else:
        parts = []
        for tag in tags:
            parts.extend(str(tag).split(","))
    return [part.strip() for part in parts if part and part.strip()]


def merge_tags(*groups: TagInput) -> str:
    """
    Merges tag groups into one comma-joined string without duplicates.
    """
    seen = set()
    merged = []
    for group in groups:
        for tag in split_tags(group):
            key = tag.lower()
            if key in seen:
                continue
            seen.add(key)
            merged.append(tag)
    return ", ".join(merged)
