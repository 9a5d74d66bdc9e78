"""Detect collection roots and read their manifest."""

import json
from pathlib import Path

MANIFEST_FILE = "bruno.json"
COLLECTION_FILE = "collection.bru"


def has_manifest(dir_path: Path) -> bool:
    """True if the directory carries the collection manifest file."""
    return (dir_path / MANIFEST_FILE).is_file()


def is_collection_dir(dir_path: Path) -> bool:
    """A collection root has ``bruno.json`` or, for older layouts, ``collection.bru``."""
    return has_manifest(dir_path) or (dir_path / COLLECTION_FILE).is_file()


def check_manifest(dir_path: Path) -> tuple[list[str], list[str]]:
    """Validate the manifest content.

    Returns (errors, warnings). A missing manifest is an error.
    """
    manifest_path = dir_path / MANIFEST_FILE
    if not manifest_path.is_file():
        return [f"{MANIFEST_FILE} not found in collection root"], []

    errors: list[str] = []
    warnings: list[str] = []
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as e:
        return [f"Invalid JSON in {MANIFEST_FILE}: {e}"], []

    if not isinstance(data, dict):
        return [f"{MANIFEST_FILE} must contain a JSON object"], []

    for field in ("version", "name"):
        if not data.get(field):
            warnings.append(f'{MANIFEST_FILE} missing "{field}" field')

    collection_type = data.get("type")
    if not collection_type:
        warnings.append(f'{MANIFEST_FILE} missing "type" field')
    elif collection_type != "collection":
        errors.append(f'Invalid type in {MANIFEST_FILE}: expected "collection", got "{collection_type}"')

    return errors, warnings
