"""Find collection roots under a directory.

Traversal uses an explicit stack of ``(path, depth)`` pairs. A directory
holding the manifest file is recorded and not descended into, so nested
collections are never reported. Depth is clamped to ``[0, MAX_DEPTH]``.
"""

import logging
import os
from pathlib import Path

from collection_agent.cache import CollectionCache
from collection_agent.errors import CollectionNotFoundError, InvalidCollectionError
from collection_agent.parser.detect import MANIFEST_FILE

logger = logging.getLogger(__name__)

MAX_DEPTH = 10
DEFAULT_DEPTH = 5
EXCLUDED_DIRS = {"node_modules"}


def clamp_depth(max_depth: int) -> int:
    return max(0, min(max_depth, MAX_DEPTH))


def _is_excluded(name: str) -> bool:
    return name.startswith(".") or name in EXCLUDED_DIRS


def _scan(dir_path: str) -> tuple[bool, list[str]]:
    """Return (has_manifest, child_directories) for one directory."""
    has_marker = False
    children = []
    with os.scandir(dir_path) as entries:
        for entry in entries:
            if entry.name == MANIFEST_FILE and entry.is_file():
                has_marker = True
            elif entry.is_dir(follow_symlinks=False) and not _is_excluded(entry.name):
                children.append(entry.path)
    return has_marker, children


def discover_collections(
    root_path: Path,
    max_depth: int = DEFAULT_DEPTH,
    cache: CollectionCache | None = None,
) -> list[str]:
    """Return absolute paths of the collection roots under ``root_path``.

    Raises CollectionNotFoundError if the root does not exist and
    InvalidCollectionError if it is not a readable directory. Unreadable
    subdirectories are logged and skipped.
    """
    depth_limit = clamp_depth(max_depth)
    root = root_path.resolve()
    cache_key = f"{root}::{depth_limit}"

    if cache is not None:
        cached = cache.lookup(cache.discovery, cache_key)
        if cached is not None:
            return list(cached)

    if not root.exists():
        raise CollectionNotFoundError(f"Search path not found: {root}")
    if not root.is_dir():
        raise InvalidCollectionError(f"Search path is not a directory: {root}")

    try:
        has_marker, children = _scan(str(root))
    except OSError as e:
        raise InvalidCollectionError(f"Cannot read search path {root}: {e}") from e

    collections: list[str] = []
    stack: list[tuple[str, int]] = []
    if has_marker:
        collections.append(str(root))
    elif depth_limit > 0:
        stack.extend((child, 1) for child in children)

    while stack:
        dir_path, depth = stack.pop()
        try:
            has_marker, children = _scan(dir_path)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", dir_path, e)
            continue

        if has_marker:
            collections.append(dir_path)
            continue
        if depth < depth_limit:
            stack.extend((child, depth + 1) for child in children)

    collections.sort()
    logger.debug("Discovered %d collection(s) under %s", len(collections), root)

    if cache is not None:
        cache.store(cache.discovery, cache_key, collections)
    return list(collections)
