"""Block extraction for the ``label { ... }`` file format.

Request and environment files are a sequence of top-level blocks::

    meta {
      name: Get Users
      seq: 1
    }

    body:json {
      {"nested": {"braces": true}}
    }

Only the first block carrying a given label is used. Later duplicates are
ignored (see ``parser.lint`` for a pass that reports them).
"""

import re
from functools import lru_cache
from typing import Iterator


@lru_cache(maxsize=64)
def _label_pattern(label: str) -> re.Pattern[str]:
    # The label must not be the tail of a longer word or dotted name.
    return re.compile(r"(?<![\w:./-])" + re.escape(label) + r"\s*\{")


def _skip_quoted(text: str, index: int) -> int:
    """Return the index just past the string literal opening at ``index``.

    A quote that is not closed on the same line is plain text (an apostrophe
    in prose, say), so only ``index + 1`` is skipped.
    """
    quote = text[index]
    cursor = index + 1
    while cursor < len(text):
        char = text[cursor]
        if char == "\\" and text[cursor + 1 : cursor + 2] != "\n":
            cursor += 2
            continue
        if char == quote:
            return cursor + 1
        if char == "\n":
            break
        cursor += 1
    return index + 1


def _find_closing_brace(text: str, start: int) -> int | None:
    """Return the index of the ``}`` that closes an already opened ``{``.

    Braces inside ``"..."`` and ``'...'`` literals are not counted.
    """
    depth = 1
    index = start
    while index < len(text):
        char = text[index]
        if char in "\"'":
            index = _skip_quoted(text, index)
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


def find_block_labels(text: str, label: str) -> list[int]:
    """Offsets of every occurrence of ``label {`` in ``text``."""
    return [m.start() for m in _label_pattern(label).finditer(text)]


def extract_block(text: str, label: str) -> str | None:
    """Return the inner text of the first ``label { ... }`` block.

    Nested braces are counted, so JSON or XML bodies come back intact.
    Returns None when the label is absent or its block is never closed.
    """
    match = _label_pattern(label).search(text)
    if match is None:
        return None
    start = match.end()
    end = _find_closing_brace(text, start)
    if end is None:
        return None
    return text[start:end]


_KEY_VALUE = re.compile(r"^\s*([\w~.\-]+)\s*:\s*(.*?)\s*$")


def iter_key_values(block: str) -> Iterator[tuple[str, str]]:
    """Yield ``(key, value)`` for each ``key: value`` line of a block."""
    for line in block.splitlines():
        match = _KEY_VALUE.match(line)
        if match:
            yield match.group(1), match.group(2)


def read_fields(block: str, keys: tuple[str, ...]) -> dict[str, str]:
    """Pick the requested keys out of a block. The first occurrence wins."""
    fields: dict[str, str] = {}
    for key, value in iter_key_values(block):
        if key in keys and key not in fields:
            fields[key] = value
    return fields
