"""Request file parser.

Extracts method, url, headers, auth, body and test names from a ``.bru``
request file into a RequestDefinition. Incomplete files parse to defaults
instead of raising.
"""

import re
from pathlib import Path

from .base import RequestBody, RequestDefinition
from .blocks import extract_block, read_fields

METHOD_BLOCKS = ("get", "post", "put", "patch", "delete", "head", "options")

BODY_KINDS = ("json", "text", "xml", "formUrlEncoded", "multipartForm", "graphql", "sparql")

_TEST_CALL = re.compile(r"""\btest\s*\(\s*(["'`])(.*?)\1""", re.DOTALL)


def parse_request_file(file_path: Path, folder: str = "") -> RequestDefinition:
    """Parse a request file. Read errors propagate to the caller."""
    text = file_path.read_text(encoding="utf-8")
    return parse_request(text, name=file_path.stem, folder=folder, path=str(file_path))


def parse_request(
    text: str,
    name: str = "",
    folder: str = "",
    path: str | None = None,
) -> RequestDefinition:
    """Parse request file text.

    ``name`` is the fallback used when the file has no ``meta`` name.
    """
    meta = _parse_meta(text)
    method, url, auth_mode = _parse_method(text)

    return RequestDefinition(
        name=meta.get("name") or name,
        method=method,
        url=url,
        headers=_parse_headers(text),
        auth_mode=auth_mode,
        body=_parse_body(text),
        tests=_parse_tests(text),
        request_type=meta.get("type"),
        sequence=_parse_seq(meta.get("seq")),
        folder=folder,
        path=path,
    )


def _parse_meta(text: str) -> dict[str, str]:
    block = extract_block(text, "meta")
    if block is None:
        return {}
    return read_fields(block, ("name", "type", "seq"))


def _parse_seq(value: str | None) -> int | None:
    if value is None:
        return None
    match = re.match(r"\d+", value)
    return int(match.group(0)) if match else None


def _parse_method(text: str) -> tuple[str, str, str]:
    """Return (method, url, auth) from the first method block found."""
    for label in METHOD_BLOCKS:
        block = extract_block(text, label)
        if block is None:
            continue
        fields = read_fields(block, ("url", "auth"))
        return label.upper(), fields.get("url", ""), fields.get("auth") or "none"
    return "GET", "", "none"


def _parse_headers(text: str) -> dict[str, str]:
    block = extract_block(text, "headers")
    if block is None:
        return {}

    headers: dict[str, str] = {}
    for line in block.splitlines():
        if not line.strip():
            continue
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        headers[key] = value.strip()
    return headers


def _parse_body(text: str) -> RequestBody | None:
    for kind in BODY_KINDS:
        block = extract_block(text, f"body:{kind}")
        if block is not None:
            return RequestBody(kind=kind, raw_content=block.strip())
    return None


def _parse_tests(text: str) -> list[str]:
    block = extract_block(text, "tests")
    if block is None:
        return []
    return [match.group(2) for match in _TEST_CALL.finditer(block)]
