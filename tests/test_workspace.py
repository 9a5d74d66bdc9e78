import shutil
from pathlib import Path

import pytest

from collection_agent.cache import CollectionCache
from collection_agent.collection.workspace import CollectionWorkspace
from collection_agent.errors import (
    CollectionNotFoundError,
    EnvironmentNotFoundError,
    InvalidCollectionError,
    RequestNotFoundError,
)

FIXTURES = Path(__file__).parent / "fixtures" / "sample-collection"


@pytest.fixture
def collection(tmp_path):
    target = tmp_path / "sample"
    shutil.copytree(FIXTURES, target)
    return target


class TestListRequests:
    def test_lists_request_files(self, collection):
        requests = CollectionWorkspace().list_requests(collection)
        assert [r.name for r in requests] == ["Health", "Get Users", "Create User"]

    def test_folder_and_path(self, collection):
        requests = CollectionWorkspace().list_requests(collection)
        by_name = {r.name: r for r in requests}
        assert by_name["Health"].folder == ""
        assert by_name["Get Users"].folder == "users"
        assert Path(by_name["Get Users"].path).is_file()

    def test_skips_environments_dependencies_and_settings_files(self, collection):
        names = {r.name for r in CollectionWorkspace().list_requests(collection)}
        assert "Ignored" not in names
        assert "users" not in names
        assert "local" not in names

    def test_missing_collection(self, tmp_path):
        with pytest.raises(CollectionNotFoundError):
            CollectionWorkspace().list_requests(tmp_path / "missing")

    def test_directory_without_manifest(self, tmp_path):
        with pytest.raises(InvalidCollectionError):
            CollectionWorkspace().list_requests(tmp_path)

    def test_collection_bru_is_enough(self, tmp_path):
        (tmp_path / "collection.bru").write_text("")
        (tmp_path / "Ping.bru").write_text("get {\n  url: /ping\n}\n")
        requests = CollectionWorkspace().list_requests(tmp_path)
        assert [r.name for r in requests] == ["Ping"]

    def test_cached_until_cleared(self, collection):
        workspace = CollectionWorkspace(CollectionCache())
        assert len(workspace.list_requests(collection)) == 3
        (collection / "New.bru").write_text("get {\n  url: /new\n}\n")
        assert len(workspace.list_requests(collection)) == 3
        workspace.cache.clear()
        assert len(workspace.list_requests(collection)) == 4

    def test_same_result_without_cache(self, collection):
        cached = CollectionWorkspace(CollectionCache())
        uncached = CollectionWorkspace(CollectionCache(enabled=False))
        assert cached.list_requests(collection) == uncached.list_requests(collection)


class TestFindRequest:
    def test_exact(self, collection):
        assert CollectionWorkspace().find_request(collection, "Get Users").method == "GET"

    def test_case_insensitive(self, collection):
        assert CollectionWorkspace().find_request(collection, "create user").method == "POST"

    def test_partial(self, collection):
        assert CollectionWorkspace().find_request(collection, "Heal").name == "Health"

    def test_file_stem(self, tmp_path):
        (tmp_path / "bruno.json").write_text("{}")
        (tmp_path / "list-users.bru").write_text("meta {\n  name: List Users\n}\nget {\n  url: /u\n}\n")
        assert CollectionWorkspace().find_request(tmp_path, "list-users").name == "List Users"

    def test_not_found(self, collection):
        with pytest.raises(RequestNotFoundError):
            CollectionWorkspace().find_request(collection, "Nope")

    def test_get_request_details(self, collection):
        request = CollectionWorkspace().get_request(collection, "Create User")
        assert request.body.kind == "json"
        assert request.headers == {"Content-Type": "application/json"}
        assert request.sequence == 2


class TestEnvironments:
    def test_list(self, collection):
        environments = CollectionWorkspace().list_environments(collection)
        assert [e.name for e in environments] == ["local", "staging"]
        assert environments[1].variables["baseUrl"] == "https://staging.example.test"

    def test_no_environments_dir(self, tmp_path):
        assert CollectionWorkspace().list_environments(tmp_path) == []

    def test_get_environment(self, collection):
        env = CollectionWorkspace().get_environment(collection, "local")
        assert env.variables["apiKey"] == "{{process.env.API_KEY}}"

    def test_missing_environment(self, collection):
        with pytest.raises(EnvironmentNotFoundError):
            CollectionWorkspace().get_environment(collection, "prod")


class TestUnreadableFiles:
    def test_undecodable_request_names_the_file(self, collection):
        (collection / "Bad.bru").write_bytes(b"\xff\xfe")
        with pytest.raises(InvalidCollectionError) as excinfo:
            CollectionWorkspace().list_requests(collection)
        assert "Bad.bru" in str(excinfo.value)

    def test_undecodable_environment_becomes_warning(self, collection):
        (collection / "environments" / "broken.bru").write_bytes(b"\xff\xfe")
        environments = CollectionWorkspace().list_environments(collection)
        broken = {e.name: e for e in environments}["broken"]
        assert broken.variables == {}
        assert "broken.bru" in broken.warnings[0]

    def test_get_environment_undecodable(self, collection):
        (collection / "environments" / "broken.bru").write_bytes(b"\xff\xfe")
        with pytest.raises(InvalidCollectionError):
            CollectionWorkspace().get_environment(collection, "broken")


class TestGetRequestAfterRemoval:
    def test_deleted_file_is_not_found(self, collection):
        workspace = CollectionWorkspace(CollectionCache())
        assert len(workspace.list_requests(collection)) == 3
        (collection / "Health.bru").unlink()
        with pytest.raises(RequestNotFoundError):
            workspace.get_request(collection, "Health")
        assert [r.name for r in workspace.list_requests(collection)] == ["Get Users", "Create User"]
