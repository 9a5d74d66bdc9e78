"""Validation reports for collections and environments."""

from pathlib import Path

from pydantic import BaseModel, Field

from collection_agent.collection.workspace import CollectionWorkspace
from collection_agent.errors import EnvironmentNotFoundError, InvalidCollectionError
from collection_agent.parser.detect import check_manifest, has_manifest
from collection_agent.parser.environment import MISSING_VARS_WARNING
from collection_agent.parser.lint import lint_request_text

SENSITIVE_NAME_PARTS = ("password", "secret", "token")


class EnvironmentReport(BaseModel):
    valid: bool = True
    exists: bool = False
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    variables: dict[str, str] | None = None


class CollectionSummary(BaseModel):
    has_manifest: bool = False
    total_requests: int = 0
    valid_requests: int = 0
    invalid_requests: int = 0
    environments: int = 0


class CollectionReport(BaseModel):
    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: CollectionSummary = Field(default_factory=CollectionSummary)


def _looks_hardcoded(value: str) -> bool:
    return bool(value) and not value.startswith("{{") and not value.startswith("$")


def validate_environment(
    workspace: CollectionWorkspace, collection_path: Path, environment_name: str
) -> EnvironmentReport:
    report = EnvironmentReport()
    try:
        environment = workspace.get_environment(collection_path, environment_name)
    except EnvironmentNotFoundError as e:
        report.valid = False
        report.errors.append(str(e))
        return report
    except InvalidCollectionError as e:
        report.exists = True
        report.valid = False
        report.errors.append(f"Failed to read environment file: {e}")
        return report

    report.exists = True
    report.variables = dict(environment.variables)
    report.warnings.extend(environment.warnings)

    if not environment.variables and MISSING_VARS_WARNING not in environment.warnings:
        report.warnings.append("No variables defined in environment")

    for key, value in environment.variables.items():
        if any(part in key.lower() for part in SENSITIVE_NAME_PARTS) and _looks_hardcoded(value):
            report.warnings.append(f'Variable "{key}" may contain hardcoded sensitive data')

    return report


def validate_collection(workspace: CollectionWorkspace, collection_path: Path) -> CollectionReport:
    """Check manifest, requests and environments of a collection."""
    report = CollectionReport()
    root = collection_path.resolve()

    if not root.exists():
        report.valid = False
        report.errors.append(f"Collection directory not found: {root}")
        return report

    report.summary.has_manifest = has_manifest(root)
    errors, warnings = check_manifest(root)
    report.errors.extend(errors)
    report.warnings.extend(warnings)
    if not report.summary.has_manifest:
        report.valid = False
        return report

    try:
        request_files = workspace.iter_request_files(root)
    except OSError as e:
        report.errors.append(f"Failed to list requests: {e}")
        request_files = []

    report.summary.total_requests = len(request_files)
    if not request_files:
        report.warnings.append("Collection contains no requests")

    for file_path in request_files:
        try:
            text = workspace.read_text(file_path)
        except InvalidCollectionError as e:
            report.summary.invalid_requests += 1
            report.errors.append(f'Invalid request "{file_path.relative_to(root).as_posix()}": {e}')
            continue
        request = workspace.load_request(root, file_path)
        report.summary.valid_requests += 1
        report.warnings.extend(f'Request "{request.name}": {w}' for w in lint_request_text(text))

    environments = workspace.list_environments(root)
    report.summary.environments = len(environments)
    if not environments:
        report.warnings.append("No environments found in collection")
    for environment in environments:
        env_report = validate_environment(workspace, root, environment.name)
        if not env_report.valid:
            report.warnings.append(
                f'Environment "{environment.name}" has issues: {", ".join(env_report.errors)}'
            )
        report.warnings.extend(f'Environment "{environment.name}": {w}' for w in env_report.warnings)

    report.valid = not report.errors
    return report
