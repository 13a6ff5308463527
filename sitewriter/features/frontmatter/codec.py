"""
Front-matter codec for note and post files.

The grammar is the small YAML subset the site actually uses:

    ---
    key: value
    key:
      - item
      - item
    ---
    body...

Parsing is an explicit state machine over the block lines (in the block, or
collecting a list under a key). Anything else inside the block is ignored by `parse` and
kept verbatim by `update`.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from sitewriter.core.errors import ValidationError

DELIMITER = "---"

_KEY_NAME_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_-]*$")
_KEY_RE = re.compile(r"^([A-Za-z0-9_][A-Za-z0-9_-]*):(?:\s+(.*?))?\s*$")
_ITEM_RE = re.compile(r"^\s*-\s+(.*?)\s*$")
_DATE_PREFIX_RE = re.compile(r"^(\d{4})([-.])(\d{2})\2(\d{2})")
_PUBLISHED_RE = re.compile(r"^feature:\s*\d+", re.MULTILINE)

Value = Union[str, List[str]]


@dataclass
class FrontMatter:
    metadata: Dict[str, Value] = field(default_factory=dict)
    body: str = ""


class _State(Enum):
    IN_BLOCK = "in_block"
    IN_LIST = "in_list"


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _split_block(raw: str) -> Optional[Tuple[List[str], int, List[str]]]:
    """Locate the front-matter block.

    Returns (lines with endings, index of closing delimiter, block lines) or
    None when there is no complete block at the top of the text.
    """
    lines = raw.splitlines(keepends=True)
    if not lines or _strip_eol(lines[0]).rstrip() != DELIMITER:
        return None
    for idx in range(1, len(lines)):
        if _strip_eol(lines[idx]).rstrip() == DELIMITER:
            return lines, idx, lines[1:idx]
    return None


def parse(raw: str) -> FrontMatter:
    located = _split_block(raw)
    if located is None:
        return FrontMatter(metadata={}, body=raw)
    lines, closing, block = located

    metadata: Dict[str, Value] = {}
    state = _State.IN_BLOCK
    list_key: Optional[str] = None

    for raw_line in block:
        line = _strip_eol(raw_line)

        if state is _State.IN_LIST:
            item = _ITEM_RE.match(line)
            if item:
                current = metadata.get(list_key)
                if not isinstance(current, list):
                    current = []
                    metadata[list_key] = current
                current.append(item.group(1))
                continue
            state, list_key = _State.IN_BLOCK, None

        match = _KEY_RE.match(line)
        if not match:
            continue
        key, value = match.group(1), match.group(2)
        if value:
            metadata[key] = value
        else:
            # Bare key: empty string until list items arrive
            metadata[key] = ""
            state, list_key = _State.IN_LIST, key

    return FrontMatter(metadata=metadata, body="".join(lines[closing + 1:]))


def flatten(metadata: Mapping[str, Value]) -> Dict[str, str]:
    """Legacy listing shape: list values joined with ','."""
    return {
        key: ",".join(value) if isinstance(value, list) else value
        for key, value in metadata.items()
    }


def _render_scalar(key: str, value: Any) -> str:
    text = ("true" if value else "false") if isinstance(value, bool) else str(value)
    # Anything parse would trim or split must not be written
    if text and text.splitlines() != [text]:
        raise ValidationError(f"{key} must be a single line", details={"field": key})
    if text != text.strip():
        raise ValidationError(f"{key} must not start or end with whitespace", details={"field": key})
    return text


def _render_entry(key: str, value: Any) -> List[str]:
    if not isinstance(key, str) or not _KEY_NAME_RE.match(key):
        raise ValidationError(f"Unsupported front-matter key: {key!r}", details={"field": str(key)})
    if isinstance(value, (list, tuple)):
        return [f"{key}:"] + [f"  - {_render_scalar(key, item)}" for item in value]
    text = _render_scalar(key, value)
    return [f"{key}: {text}" if text else f"{key}:"]


def _is_removal(value: Any) -> bool:
    return value is None or (isinstance(value, (list, tuple)) and not value)


def _render_all(entries: Mapping[str, Any]) -> Dict[str, List[str]]:
    """Render every non-removed entry up front so a bad value fails before any output."""
    return {key: _render_entry(key, value) for key, value in entries.items() if not _is_removal(value)}


def serialize(metadata: Mapping[str, Any], body: str) -> str:
    """Inverse of `parse` for string values: parse(serialize(m, b)) gives back (m, b).

    Raises ValidationError for keys outside the grammar and for values that
    span lines or carry surrounding whitespace.
    """
    lines = [DELIMITER]
    for rendered in _render_all(metadata).values():
        lines.extend(rendered)
    lines.append(DELIMITER)
    return "\n".join(lines) + "\n" + body


def update(raw: str, changes: Mapping[str, Any]) -> str:
    """Rewrite only the keys in `changes`, leaving every other line as it was.

    None or an empty list removes the key together with its list lines. Keys
    not present yet are appended at the end of the block. Every change is
    checked before anything is rewritten.
    """
    for key in changes:
        if not isinstance(key, str) or not _KEY_NAME_RE.match(key):
            raise ValidationError(f"Unsupported front-matter key: {key!r}", details={"field": str(key)})
    rendered = _render_all(changes)

    located = _split_block(raw)
    if located is None:
        if not rendered:
            return raw
        return serialize({k: v for k, v in changes.items() if k in rendered}, raw)
    lines, closing, block = located

    newline = "\r\n" if lines[0].endswith("\r\n") else "\n"
    out: List[str] = []
    written = set()
    skipping_items = False

    for raw_line in block:
        line = _strip_eol(raw_line)
        if skipping_items:
            if _ITEM_RE.match(line):
                continue
            skipping_items = False

        match = _KEY_RE.match(line)
        if not match or match.group(1) not in changes:
            out.append(raw_line if raw_line.endswith(("\n", "\r")) else raw_line + newline)
            continue

        key = match.group(1)
        # A bare key owns the list items that follow it
        skipping_items = not match.group(2)
        if key in written:
            continue
        written.add(key)
        out.extend(entry + newline for entry in rendered.get(key, ()))

    for key, entries in rendered.items():
        if key not in written:
            out.extend(entry + newline for entry in entries)

    return lines[0] + "".join(out) + "".join(lines[closing:])


def replace_body(raw: str, body: str) -> str:
    """Swap the text after the block, keeping the block byte for byte."""
    located = _split_block(raw)
    if located is None:
        return body
    lines, closing, _ = located
    return "".join(lines[:closing + 1]) + body


def extract_date(filename: str, today: Optional[date] = None) -> str:
    """Date prefix of a post filename as YYYY-MM-DD.

    Files without a recognizable prefix get today's date, which is a display
    fallback and not the real publication date.
    """
    name = filename.rsplit("/", 1)[-1]
    match = _DATE_PREFIX_RE.match(name)
    if match:
        return f"{match.group(1)}-{match.group(3)}-{match.group(4)}"
    return (today or date.today()).isoformat()


def strip_date_prefix(name: str) -> str:
    match = _DATE_PREFIX_RE.match(name)
    return name[match.end():].lstrip("-") if match else name


def is_published_post(raw: str) -> bool:
    """A post counts as published when its block carries a numeric `feature`.

    `feature: 0` counts too.
    """
    located = _split_block(raw)
    if located is None:
        return False
    _, _, block = located
    return bool(_PUBLISHED_RE.search("".join(block)))
