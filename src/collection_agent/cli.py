"""CLI entry point for collection-agent."""

import json
from dataclasses import dataclass
from functools import wraps
from pathlib import Path

import click
from pydantic import BaseModel

from collection_agent.cache import CollectionCache
from collection_agent.collection.discovery import DEFAULT_DEPTH, discover_collections
from collection_agent.collection.validate import validate_collection, validate_environment
from collection_agent.collection.workspace import CollectionWorkspace
from collection_agent.config import Settings, load_settings
from collection_agent.errors import CollectionAgentError
from collection_agent.log import setup_logging
from collection_agent.runner.executor import BruRunner, RunOptions


@dataclass
class AppContext:
    settings: Settings
    workspace: CollectionWorkspace

    def runner(self) -> BruRunner:
        return BruRunner(settings=self.settings, workspace=self.workspace)


def _echo_json(data) -> None:
    if isinstance(data, BaseModel):
        click.echo(data.model_dump_json(indent=2))
    else:
        click.echo(json.dumps(data, indent=2, default=lambda m: m.model_dump()))


def _handle_errors(func):
    """Turn classified errors into a one-line message and exit code 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except CollectionAgentError as e:
            raise click.ClickException(f"[{e.kind}] {e}") from e

    return wrapper


def _parse_env_vars(values: tuple[str, ...]) -> dict[str, str]:
    env_vars = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {item!r}", param_hint="--env-var")
        env_vars[key] = value
    return env_vars


def _run_options(fn):
    options = [
        click.option("--env", "environment", default=None, help="Environment name or file."),
        click.option("--env-var", "env_vars", multiple=True, help="Variable override as KEY=VALUE."),
        click.option("--tests-only", is_flag=True, help="Only run requests that have tests."),
        click.option("--bail", is_flag=True, help="Stop at the first failure."),
        click.option("--reporter-json", default=None, help="Also write a JSON report to this path."),
        click.option("--reporter-junit", default=None, help="Also write a JUnit XML report to this path."),
        click.option("--reporter-html", default=None, help="Also write an HTML report to this path."),
        click.option("--timeout", type=float, default=None, help="Timeout in seconds."),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


@click.group()
@click.option("--config", "config_path", default=None, type=click.Path(path_type=Path), help="Configuration file.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
@_handle_errors
def main(ctx: click.Context, config_path: Path | None, verbose: bool):
    """Collection Agent: discover, inspect and run API test collections."""
    settings = load_settings(config_path)
    setup_logging(settings.logging, verbose=verbose)
    cache = CollectionCache(
        ttl=settings.performance.cache_ttl,
        enabled=settings.performance.cache_enabled,
    )
    ctx.obj = AppContext(settings=settings, workspace=CollectionWorkspace(cache))


@main.command()
@click.argument("search_path", required=False, type=click.Path(path_type=Path))
@click.option("--depth", default=DEFAULT_DEPTH, type=int, help="Maximum search depth (capped at 10).")
@click.pass_obj
@_handle_errors
def discover(app: AppContext, search_path: Path | None, depth: int):
    """Find collection roots under SEARCH_PATH."""
    if search_path is None:
        if not app.settings.collections_home:
            raise click.UsageError("SEARCH_PATH is required when collections_home is not configured.")
        search_path = Path(app.settings.collections_home)
    _echo_json(discover_collections(search_path, depth, cache=app.workspace.cache))


@main.command("list-requests")
@click.argument("collection", type=click.Path(path_type=Path))
@click.pass_obj
@_handle_errors
def list_requests(app: AppContext, collection: Path):
    """List the requests of a collection."""
    requests = app.workspace.list_requests(collection)
    _echo_json([r.model_dump(include={"name", "method", "url", "folder", "sequence", "path"}) for r in requests])


@main.command("show-request")
@click.argument("collection", type=click.Path(path_type=Path))
@click.argument("request_name")
@click.pass_obj
@_handle_errors
def show_request(app: AppContext, collection: Path, request_name: str):
    """Show the parsed details of one request."""
    _echo_json(app.workspace.get_request(collection, request_name))


@main.command("list-envs")
@click.argument("collection", type=click.Path(path_type=Path))
@click.pass_obj
@_handle_errors
def list_envs(app: AppContext, collection: Path):
    """List the environments of a collection."""
    _echo_json(app.workspace.list_environments(collection))


@main.command("validate-env")
@click.argument("collection", type=click.Path(path_type=Path))
@click.argument("environment_name")
@click.pass_obj
@_handle_errors
def validate_env(app: AppContext, collection: Path, environment_name: str):
    """Check an environment file for problems."""
    report = validate_environment(app.workspace, collection, environment_name)
    _echo_json(report)
    if not report.valid:
        raise SystemExit(1)


@main.command()
@click.argument("collection", type=click.Path(path_type=Path))
@click.pass_obj
@_handle_errors
def validate(app: AppContext, collection: Path):
    """Validate manifest, requests and environments of a collection."""
    report = validate_collection(app.workspace, collection)
    _echo_json(report)
    if not report.valid:
        raise SystemExit(1)


@main.command("run-request")
@click.argument("collection", type=click.Path(path_type=Path))
@click.argument("request_name")
@_run_options
@click.pass_obj
@_handle_errors
def run_request(app: AppContext, collection: Path, request_name: str, env_vars, **kwargs):
    """Run a single request through the executor."""
    options = RunOptions(env_variables=_parse_env_vars(env_vars), **kwargs)
    result = app.runner().run_request(collection, request_name, options)
    _echo_json(result)
    if result.summary.failed:
        raise SystemExit(1)


@main.command("run-collection")
@click.argument("collection", type=click.Path(path_type=Path))
@click.option("--folder", "folder_path", default=None, help="Run only this folder of the collection.")
@click.option("--recursive/--no-recursive", default=True, help="Descend into sub-folders.")
@_run_options
@click.pass_obj
@_handle_errors
def run_collection(app: AppContext, collection: Path, env_vars, **kwargs):
    """Run a whole collection, or one folder of it."""
    options = RunOptions(env_variables=_parse_env_vars(env_vars), **kwargs)
    result = app.runner().run_collection(collection, options)
    _echo_json(result)
    if result.summary.failed:
        raise SystemExit(1)


@main.command()
@click.pass_obj
@_handle_errors
def health(app: AppContext):
    """Report executor availability and configuration."""
    runner = app.runner()
    try:
        version = runner.version()
    except CollectionAgentError as e:
        version = None
        error = f"[{e.kind}] {e}"
    else:
        error = None
    _echo_json({
        "executor": runner.command,
        "available": version is not None,
        "version": version,
        "error": error,
        "cache_enabled": app.settings.performance.cache_enabled,
        "timeouts": app.settings.timeout.model_dump(),
    })
    if version is None:
        raise SystemExit(1)
