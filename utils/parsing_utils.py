"""
utils/parsing_utils.py

Purpose: Parsing of structured LLM completions and uploaded text

- Labeled bracketed lists:  LABEL: [ "line", "line" ]
- Labeled JSON objects:     LABEL: { "key": "value" }
- Labeled quoted fields:    LABEL: "value"
- Keyword section extraction from plain documents
"""

import json
import re
from typing import Dict, Iterable, List, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)

# Quotes, whitespace, commas, dashes and bullet marks around list items
LEADING_NOISE = re.compile(r"^[\s\"'“”‘’`,\-–—*•]+")
TRAILING_NOISE = re.compile(r"[\s\"'“”‘’`,\-–—]+$")


def _label_pattern(label: str, opener: str) -> re.Pattern:
    return re.compile(rf"(?<![A-Za-z0-9_]){re.escape(label)}\s*:\s*{re.escape(opener)}")


def clean_list_line(line: str) -> str:
    """
    Strips surrounding quotes, commas, dashes and bullets from one list line.
    """
    line = LEADING_NOISE.sub("", line)
    line = TRAILING_NOISE.sub("", line)
    return line.strip()


def parse_bracketed_list(text: str, label: str, min_length: int = 20) -> List[str]:
    """
    Extracts the lines of a `LABEL: [ ... ]` block.

    Each line is trimmed of surrounding punctuation; only lines strictly
    longer than `min_length` are kept. A missing label yields [].

    Args:
        text: Raw completion text
        label: Block label, e.g. "GROWTH_EDGES"
        min_length: Lines of this length or shorter are discarded

    Returns:
        Cleaned lines in document order
    """
    if not text:
        return []

    match = re.search(
        rf"(?<![A-Za-z0-9_]){re.escape(label)}\s*:\s*\[([\s\S]*?)\]",
        text
    )
    if not match:
        return []

    lines = []
    for raw in match.group(1).split("\n"):
        line = clean_list_line(raw)
        if len(line) > min_length:
            lines.append(line)
    return lines


def parse_bracketed_lists(text: str, labels: Iterable[str], min_length: int = 20) -> Dict[str, List[str]]:
    """
    Parses several bracketed lists at once; every label gets a (possibly empty) list.
    """
    return {label: parse_bracketed_list(text, label, min_length) for label in labels}


def _balanced_object(text: str, start: int) -> Optional[str]:
    """Returns the {...} span starting at `start`, honouring nested braces and strings."""
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return None


def parse_json_section(text: str, label: str) -> dict:
    """
    Extracts and decodes the JSON object following `LABEL:`.

    Returns {} when the label is missing or the object is not valid JSON.
    """
    if not text:
        return {}

    match = _label_pattern(label, "{").search(text)
    if not match:
        return {}

    span = _balanced_object(text, match.end() - 1)
    if span is None:
        logger.warning(f"Unterminated JSON section {label}")
        return {}

    try:
        value = json.loads(span)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse JSON section {label}: {e}")
        return {}

    return value if isinstance(value, dict) else {}


def parse_quoted_field(text: str, label: str) -> str:
    """
    Extracts the value of a `LABEL: "value"` line, or "" if absent.
    """
    if not text:
        return ""
    match = re.search(rf"(?<![A-Za-z0-9_]){re.escape(label)}\s*:\s*\"([^\"]+)\"", text)
    return match.group(1).strip() if match else ""


def as_text(value) -> str:
    """
    Renders a decoded JSON value as plain text; lists are joined with ", ".
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(as_text(item) for item in value if as_text(item))
    if isinstance(value, dict):
        return "; ".join(f"{key}: {as_text(item)}" for key, item in value.items() if as_text(item))
    return str(value).strip()


def extract_section(
    text: str,
    keywords: Iterable[str],
    max_lines: int = 10,
    max_chars: int = 500
) -> str:
    """
    Finds the first line mentioning any keyword and returns the content below it.

    Reads at most `max_lines` following lines, skips blank ones, stops at a
    very short line (likely the next heading) or once `max_chars` is exceeded.

    Args:
        text: Plain document text
        keywords: Lowercase heading keywords, checked in order per line
        max_lines: Look-ahead window after the heading
        max_chars: Soft cap on the joined content

    Returns:
        Joined section content, or "" if no heading matched
    """
    lines = text.split("\n")
    keywords = list(keywords)

    for i, line in enumerate(lines):
        lowered = line.lower()
        if not any(keyword in lowered for keyword in keywords):
            continue

        content: List[str] = []
        for next_line in lines[i + 1:i + max_lines]:
            next_line = next_line.strip()
            if not next_line:
                continue
            if len(next_line) < 5:
                break
            content.append(next_line)
            if len(" ".join(content)) > max_chars:
                break
        return " ".join(content)

    return ""
