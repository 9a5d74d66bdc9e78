"""Environment file parser.

An environment file holds a single ``vars { key: value }`` block. Values are
kept as strings; placeholder substitution happens in the executor.
"""

import re
from pathlib import Path

from .base import EnvironmentDefinition
from .blocks import extract_block

_VARIABLE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*:\s*(.+?)\s*$")

MISSING_VARS_WARNING = 'Environment file does not contain a "vars {}" block'


def parse_environment(text: str) -> dict[str, str]:
    """Return the variables of the ``vars`` block. A later key wins."""
    block = extract_block(text, "vars")
    if block is None:
        return {}

    variables: dict[str, str] = {}
    for line in block.splitlines():
        match = _VARIABLE.match(line)
        if match:
            variables[match.group(1)] = match.group(2)
    return variables


def parse_environment_text(text: str, name: str, path: str) -> EnvironmentDefinition:
    warnings = []
    if extract_block(text, "vars") is None:
        warnings.append(MISSING_VARS_WARNING)
    return EnvironmentDefinition(
        name=name,
        path=path,
        variables=parse_environment(text),
        warnings=warnings,
    )


def parse_environment_file(file_path: Path) -> EnvironmentDefinition:
    """Parse ``environments/<name>.bru``; the name is the file stem."""
    text = file_path.read_text(encoding="utf-8")
    return parse_environment_text(text, name=file_path.stem, path=str(file_path.resolve()))
