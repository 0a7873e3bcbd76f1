#!/usr/bin/env python3
"""
KUBECHARTER LEXER - Indentation Sharder
---------------------------------------
Decomposes manifest text into LineRecords and answers the one structural
question every templating pass needs: where does the value of this key end?

There is no YAML parser here. A block's vertical extent is derived purely
from indentation deltas, which is enough for kustomize-rendered manifests.

Author: KubeCharter Team
Date: 2026-10-17
"""

from typing import List, Optional, Tuple

from kubecharter.core.models import Block, LineRecord


def leading_whitespace(line: str) -> Tuple[str, int]:
    """Returns the (prefix, width) of the spaces/tabs opening a line."""
    trimmed = line.lstrip(" \t")
    width = len(line) - len(trimmed)
    return line[:width], width


def key_column(line: str) -> int:
    """
    Column at which the mapping key of a line starts.
    Example: "    - args:" -> 6, "    args:" -> 4
    """
    _, width = leading_whitespace(line)
    content = line[width:]
    if content.startswith("-"):
        after_dash = content[1:]
        return width + 1 + (len(after_dash) - len(after_dash.lstrip(" \t")))
    return width


def key_content(line: str) -> str:
    """The trimmed line with any leading list indicator removed."""
    content = line.strip()
    if content.startswith("-"):
        content = content[1:].strip()
    return content


def locate_block(lines: List[str], key_index: int, sequence: bool = False) -> Block:
    """
    Finds the half-open range [key_index, end) holding a key and its value.

    Scanning stops at the first line that is blank, dedents below the key,
    or sits at the key's own column. With sequence=True, list items at the
    key's column ('-' lines, the kustomize style for env/args) stay inside.
    Running off the end of the document counts as a dedent.
    """
    indent, _ = leading_whitespace(lines[key_index])
    width = key_column(lines[key_index])

    end = key_index + 1
    while end < len(lines):
        trimmed = lines[end].strip()
        if not trimmed:
            break
        _, line_width = leading_whitespace(lines[end])
        if line_width < width:
            break
        if line_width == width and not (sequence and trimmed.startswith("-")):
            break
        end += 1

    return Block(start=key_index, end=end, indent=indent, column=width)


def locate_item(lines: List[str], index: int) -> Optional[Block]:
    """
    Finds the sequence item enclosing the key on line `index`, e.g. the
    whole container a 'name: manager' line belongs to.

    The item opens at the nearest '-' line above whose key shares the
    column and runs until a line dedents to the dash or beyond. Returns
    None when the key is not inside a sequence item.
    """
    column = key_column(lines[index])
    start = index
    while start >= 0:
        line = lines[start]
        if line.strip():
            _, width = leading_whitespace(line)
            if line.strip().startswith("-") and key_column(line) == column:
                break
            if width < column:
                return None
        start -= 1
    if start < 0:
        return None

    indent, dash_width = leading_whitespace(lines[start])
    end = start + 1
    while end < len(lines):
        if lines[end].strip():
            _, width = leading_whitespace(lines[end])
            if width <= dash_width:
                break
        end += 1

    return Block(start=start, end=end, indent=indent, column=column)


def key_indent(line: str) -> str:
    """Whitespace reaching the key column, with any list indicator blanked out."""
    prefix, width = leading_whitespace(line)
    return prefix + " " * (key_column(line) - width)


def find_key_line(lines: List[str], key: str, start: int = 0) -> Optional[int]:
    """Index of the first line whose trimmed content equals `key`."""
    for i in range(start, len(lines)):
        if lines[i].strip() == key:
            return i
    return None


class KubeLexer:
    """
    Orchestrates the transition from raw text to LineRecords.
    """

    def normalize(self, text: str) -> str:
        """
        Removes invisible UTF-8 BOM markers and standardizes line endings.
        """
        # Remove Byte Order Mark if present
        text = text.lstrip('\ufeff')
        # Standardize CRLF to LF
        return text.replace('\r\n', '\n')

    def records(self, text: str) -> List[LineRecord]:
        """
        Decomposes the text into one LineRecord per physical line.
        Splitting on '\\n' keeps trailing blank lines addressable.
        """
        records = []
        for i, line in enumerate(text.split("\n")):
            _, width = leading_whitespace(line)
            content = line.strip()
            records.append(LineRecord(
                line_no=i,
                indent=width,
                content=content,
                is_list_item=content.startswith("-"),
                raw_line=line
            ))
        return records
