"""Canonical run result models.

The executor's JSON report has changed shape across versions; the
normalizer maps every known shape onto these models.
"""

from typing import Any

from pydantic import BaseModel, Field


class RawOutput(BaseModel):
    """What the executor process left behind."""

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0


class AssertionResult(BaseModel):
    name: str
    passed: bool
    error: str | None = None


class RequestInfo(BaseModel):
    method: str | None = None
    url: str | None = None
    headers: dict[str, Any] | None = None
    body: Any = None


class ResponseInfo(BaseModel):
    status: int | None = None
    status_text: str | None = None
    headers: dict[str, Any] | None = None
    body: Any = None
    response_time_ms: float | None = None


class RequestResult(BaseModel):
    name: str
    passed: bool
    http_status: int = 0
    duration_ms: float = 0
    error: str | None = None
    request: RequestInfo | None = None
    response: ResponseInfo | None = None
    assertions: list[AssertionResult] = Field(default_factory=list)


class RunSummary(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    total_duration_ms: float = 0


class CanonicalRunResult(BaseModel):
    exit_code: int
    summary: RunSummary = Field(default_factory=RunSummary)
    results: list[RequestResult] = Field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    # True when no known JSON shape was found; stdout/stderr are the only content.
    degraded: bool = False
