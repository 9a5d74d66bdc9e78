"""Wrapper around the external ``bru`` command-line executor.

The executor is a black box: it is started in the collection root, asked to
write its JSON report to a temporary file, and its exit code plus that report
(or stdout, when the report is missing) are handed to the normalizer.
"""

import json
import logging
import os
import shutil
import subprocess
import tempfile
import uuid
from pathlib import Path

from pydantic import BaseModel, Field

from collection_agent.collection.workspace import CollectionWorkspace
from collection_agent.config import Settings
from collection_agent.errors import (
    ExecutionFailedError,
    ExecutionTimeoutError,
    ExecutorNotFoundError,
    InvalidCollectionError,
)
from collection_agent.runner.base import CanonicalRunResult, RawOutput
from collection_agent.runner.normalizer import extract_json, normalize

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "bru"
NOT_FOUND_MARKERS = ("command not found", "not recognized", "ENOENT")
NOT_A_ROOT_MARKER = "You can run only at the root of a collection"


class RunOptions(BaseModel):
    environment: str | None = None
    env_variables: dict[str, str] = Field(default_factory=dict)
    folder_path: str | None = None
    recursive: bool = True
    tests_only: bool = False
    bail: bool = False
    reporter_json: str | None = None
    reporter_junit: str | None = None
    reporter_html: str | None = None
    timeout: float | None = None  # seconds; overrides the configured timeout


def resolve_command(settings: Settings) -> str:
    """Configured path, then ``bru`` on PATH, then a local node_modules install."""
    if settings.bru_path:
        return settings.bru_path
    on_path = shutil.which(DEFAULT_COMMAND)
    if on_path:
        return on_path
    suffix = ".cmd" if os.name == "nt" else ""
    local = Path.cwd() / "node_modules" / ".bin" / f"{DEFAULT_COMMAND}{suffix}"
    if local.is_file():
        return str(local)
    return DEFAULT_COMMAND


def environment_name(environment: str) -> str:
    """The executor wants a bare environment name, not a path or file name."""
    if "/" in environment or "\\" in environment or os.path.isabs(environment):
        environment = environment.replace("\\", "/").rsplit("/", 1)[-1]
    if environment.endswith(".bru"):
        environment = environment[: -len(".bru")]
    return environment


def build_args(target: str, output_file: Path, options: RunOptions, recursive: bool = False) -> list[str]:
    args = ["run", target]
    if recursive:
        args.append("-r")
    args.extend(["--format", "json", "--output", str(output_file)])

    if options.environment:
        args.extend(["--env", environment_name(options.environment)])
    for key, value in options.env_variables.items():
        args.extend(["--env-var", f"{key}={value}"])
    if options.tests_only:
        args.append("--tests-only")
    if options.bail:
        args.append("--bail")
    if options.reporter_json:
        args.extend(["--reporter-json", options.reporter_json])
    if options.reporter_junit:
        args.extend(["--reporter-junit", options.reporter_junit])
    if options.reporter_html:
        args.extend(["--reporter-html", options.reporter_html])
    return args


class BruRunner:
    """Run requests and collections through the external executor."""

    def __init__(
        self,
        settings: Settings | None = None,
        workspace: CollectionWorkspace | None = None,
        command: str | None = None,
    ):
        self.settings = settings or Settings()
        self.workspace = workspace or CollectionWorkspace()
        self.command = command or resolve_command(self.settings)

    def version(self) -> str:
        """Return the executor's version string."""
        try:
            result = subprocess.run(
                [self.command, "--version"],
                capture_output=True,
                text=True,
                timeout=self.settings.timeout.request,
            )
        except FileNotFoundError as e:
            raise ExecutorNotFoundError(f"Executor not found at: {self.command}") from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionTimeoutError(f"{self.command} --version timed out", e.timeout) from e
        if result.returncode != 0:
            raise ExecutionFailedError(
                f"{self.command} --version failed", result.returncode, result.stderr
            )
        return result.stdout.strip()

    def is_available(self) -> bool:
        try:
            version = self.version()
        except (ExecutorNotFoundError, ExecutionFailedError, ExecutionTimeoutError) as e:
            logger.warning("Executor unavailable: %s", e)
            return False
        logger.info("Executor %s version %s", self.command, version)
        return True

    def run_request(
        self, collection_path: Path, request_name: str, options: RunOptions | None = None
    ) -> CanonicalRunResult:
        """Run one request, looked up by name within the collection."""
        options = options or RunOptions()
        root = self.workspace.resolve_collection(collection_path)
        request = self.workspace.find_request(root, request_name)
        target = Path(request.path).relative_to(root).as_posix()
        timeout = options.timeout or self.settings.timeout.request
        return self._execute(root, target, options, recursive=False, timeout=timeout)

    def run_collection(self, collection_path: Path, options: RunOptions | None = None) -> CanonicalRunResult:
        """Run the whole collection, or one folder of it."""
        options = options or RunOptions()
        root = self.workspace.resolve_collection(collection_path)
        target = options.folder_path or "."
        timeout = options.timeout or self.settings.timeout.collection
        return self._execute(root, target, options, recursive=options.recursive, timeout=timeout)

    def _execute(
        self, root: Path, target: str, options: RunOptions, recursive: bool, timeout: float
    ) -> CanonicalRunResult:
        output_file = Path(tempfile.gettempdir()) / f"bru-result-{uuid.uuid4()}.json"
        args = [self.command, *build_args(target, output_file, options, recursive=recursive)]
        logger.debug("Running %s in %s", " ".join(args), root)

        try:
            try:
                completed = subprocess.run(
                    args,
                    cwd=root,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
            except FileNotFoundError as e:
                raise ExecutorNotFoundError(
                    f"Executor not found at: {self.command}. Install it with: npm install -g @usebruno/cli"
                ) from e
            except subprocess.TimeoutExpired as e:
                raise ExecutionTimeoutError(
                    f"Run of {target} timed out after {timeout:g}s", timeout
                ) from e

            raw = RawOutput(
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                exit_code=completed.returncode,
            )
            artifact = _read_artifact(output_file)
        finally:
            output_file.unlink(missing_ok=True)

        if raw.exit_code != 0 and artifact is None and extract_json(raw.stdout) is None:
            _raise_for_stderr(self.command, raw)
            message = raw.stderr.strip() or raw.stdout.strip() or f"exit code {raw.exit_code}"
            raise ExecutionFailedError(f"Executor error: {message}", raw.exit_code, raw.stderr)

        return normalize(raw, artifact)


def _read_artifact(output_file: Path):
    try:
        text = output_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("No JSON report written to %s", output_file)
        return None
    except UnicodeDecodeError as e:
        logger.warning("Cannot decode JSON report %s: %s", output_file, e)
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Cannot parse JSON report %s: %s", output_file, e)
        return None


def _raise_for_stderr(command: str, raw: RawOutput) -> None:
    if any(marker in raw.stderr for marker in NOT_FOUND_MARKERS):
        raise ExecutorNotFoundError(f"Executor not found at: {command}")
    if NOT_A_ROOT_MARKER in raw.stderr:
        raise InvalidCollectionError(
            "The executor must run from a collection root containing bruno.json or collection.bru"
        )
