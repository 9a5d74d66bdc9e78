"""Strict checks for request files.

The parser is tolerant: it uses the first of duplicate blocks and skips
header lines it cannot read. This pass reports those cases so that
validation can surface them as warnings.
"""

from .blocks import extract_block, find_block_labels
from .request import BODY_KINDS, METHOD_BLOCKS

CHECKED_LABELS = ("meta", "headers", "tests", *METHOD_BLOCKS, *(f"body:{kind}" for kind in BODY_KINDS))


def lint_request_text(text: str) -> list[str]:
    """Return human-readable warnings for one request file."""
    warnings = []

    for label in CHECKED_LABELS:
        count = len(find_block_labels(text, label))
        if count > 1:
            warnings.append(f'Duplicate "{label}" block ({count} found); only the first is used')

    method_labels = [label for label in METHOD_BLOCKS if extract_block(text, label) is not None]
    if not method_labels:
        warnings.append("No HTTP method block found; request is not runnable")
    elif len(method_labels) > 1:
        warnings.append(f"Multiple method blocks ({', '.join(method_labels)}); using {method_labels[0]}")

    headers = extract_block(text, "headers")
    if headers is not None:
        for line in headers.splitlines():
            stripped = line.strip()
            key, sep, _ = stripped.partition(":")
            if stripped and not (sep and key.strip()):
                warnings.append(f"Malformed header line skipped: {stripped!r}")

    return warnings
