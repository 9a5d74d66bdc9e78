"""Read requests and environments out of a collection directory.

All filesystem reads go through the shared CollectionCache; bypassing or
clearing the cache gives the same results.
"""

import logging
from pathlib import Path

from collection_agent.cache import CollectionCache
from collection_agent.errors import (
    CollectionNotFoundError,
    EnvironmentNotFoundError,
    InvalidCollectionError,
    RequestNotFoundError,
)
from collection_agent.parser.base import EnvironmentDefinition, RequestDefinition
from collection_agent.parser.detect import COLLECTION_FILE, is_collection_dir
from collection_agent.parser.environment import parse_environment_text
from collection_agent.parser.request import parse_request

logger = logging.getLogger(__name__)

REQUEST_SUFFIX = ".bru"
ENVIRONMENTS_DIR = "environments"
SKIPPED_DIRS = {"node_modules", ENVIRONMENTS_DIR}
NON_REQUEST_FILES = {COLLECTION_FILE, "folder.bru"}


class CollectionWorkspace:
    """Collection operations backed by a cache."""

    def __init__(self, cache: CollectionCache | None = None):
        self.cache = cache or CollectionCache()

    def read_text(self, file_path: Path) -> str:
        """Return the UTF-8 text of a collection file.

        Raises InvalidCollectionError naming the file when it cannot be read
        or decoded.
        """
        key = str(file_path)
        cached = self.cache.lookup(self.cache.files, key)
        if cached is not None:
            return cached
        try:
            text = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidCollectionError(f"Cannot read {file_path}: {e}") from e
        self.cache.store(self.cache.files, key, text)
        return text

    def resolve_collection(self, collection_path: Path) -> Path:
        """Check that ``collection_path`` is a collection root and return it absolute."""
        path = collection_path.resolve()
        if not path.exists():
            raise CollectionNotFoundError(f"Collection not found: {path}")
        if not path.is_dir():
            raise InvalidCollectionError(f"Collection path is not a directory: {path}")
        if not is_collection_dir(path):
            raise InvalidCollectionError(f"Not a valid collection: {path}")
        return path

    def list_requests(self, collection_path: Path) -> list[RequestDefinition]:
        """Parse every request file in the collection, ordered by folder then sequence."""
        root = self.resolve_collection(collection_path)
        key = str(root)
        cached = self.cache.lookup(self.cache.requests, key)
        if cached is not None:
            return list(cached)

        requests = [
            self.load_request(root, file_path) for file_path in self.iter_request_files(root)
        ]
        requests.sort(key=_request_order)
        self.cache.store(self.cache.requests, key, requests)
        return list(requests)

    def iter_request_files(self, root: Path) -> list[Path]:
        """Request files under an already resolved collection root."""
        found = []
        stack = [root]
        while stack:
            current = stack.pop()
            for entry in sorted(current.iterdir()):
                if entry.is_dir():
                    if entry.name.startswith(".") or entry.name in SKIPPED_DIRS:
                        continue
                    stack.append(entry)
                elif entry.suffix == REQUEST_SUFFIX and entry.name not in NON_REQUEST_FILES:
                    found.append(entry)
        return found

    def load_request(self, root: Path, file_path: Path) -> RequestDefinition:
        folder = file_path.parent.relative_to(root).as_posix()
        return parse_request(
            self.read_text(file_path),
            name=file_path.stem,
            folder="" if folder == "." else folder,
            path=str(file_path),
        )

    def find_request(self, collection_path: Path, request_name: str) -> RequestDefinition:
        """Look a request up by name.

        Tries exact name, file name, case-insensitive name and then a
        substring match before giving up.
        """
        requests = self.list_requests(collection_path)
        lowered = request_name.lower()
        matchers = (
            lambda r: r.name == request_name,
            lambda r: r.path is not None and Path(r.path).stem == request_name,
            lambda r: r.name.lower() == lowered,
            lambda r: request_name in r.name,
        )
        for matches in matchers:
            for request in requests:
                if matches(request):
                    return request
        raise RequestNotFoundError(f'Request "{request_name}" not found in collection')

    def get_request(self, collection_path: Path, request_name: str) -> RequestDefinition:
        """Re-parse the request file found by name, bypassing the request list."""
        root = self.resolve_collection(collection_path)
        found = self.find_request(root, request_name)
        file_path = Path(found.path)
        if not file_path.is_file():
            # The request list may be cached from before the file was removed.
            self.cache.invalidate(str(root))
            self.cache.files.delete(str(file_path))
            raise RequestNotFoundError(f"Request file no longer exists: {file_path}")
        return self.load_request(root, file_path)

    def list_environments(self, collection_path: Path) -> list[EnvironmentDefinition]:
        """Parse every environment file; an absent environments directory gives ``[]``."""
        root = collection_path.resolve()
        key = str(root)
        cached = self.cache.lookup(self.cache.environments, key)
        if cached is not None:
            return list(cached)

        env_dir = root / ENVIRONMENTS_DIR
        if not env_dir.is_dir():
            return []

        environments = []
        for file_path in sorted(env_dir.glob(f"*{REQUEST_SUFFIX}")):
            if not file_path.is_file():
                continue
            try:
                text = self.read_text(file_path)
            except InvalidCollectionError as e:
                logger.warning("Skipping environment %s: %s", file_path, e)
                environments.append(
                    EnvironmentDefinition(
                        name=file_path.stem,
                        path=str(file_path),
                        warnings=[str(e)],
                    )
                )
                continue
            environments.append(parse_environment_text(text, file_path.stem, str(file_path)))

        self.cache.store(self.cache.environments, key, environments)
        return list(environments)

    def get_environment(self, collection_path: Path, environment_name: str) -> EnvironmentDefinition:
        env_path = collection_path.resolve() / ENVIRONMENTS_DIR / f"{environment_name}{REQUEST_SUFFIX}"
        if not env_path.is_file():
            raise EnvironmentNotFoundError(f"Environment file not found: {env_path}")
        return parse_environment_text(self.read_text(env_path), environment_name, str(env_path))


def _request_order(request: RequestDefinition) -> tuple:
    seq = request.sequence if request.sequence is not None else float("inf")
    return (request.folder, seq, request.name)
