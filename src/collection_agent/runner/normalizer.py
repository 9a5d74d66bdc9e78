"""Normalize executor output into a CanonicalRunResult.

The JSON payload is taken from the artifact file when one was written, or
else from stdout. It is then handed to an ordered list of shape adapters;
the first adapter that recognizes the payload wins. Unrecognized output is
not an error: the result keeps the exit code and the raw text.
"""

import json
import logging
import math
import re
from typing import Any, Callable

from .base import (
    AssertionResult,
    CanonicalRunResult,
    RawOutput,
    RequestInfo,
    RequestResult,
    ResponseInfo,
    RunSummary,
)

logger = logging.getLogger(__name__)

ShapeAdapter = Callable[[Any, RawOutput], CanonicalRunResult | None]

SUMMARY_ALIASES = {
    "total": ("totalRequests", "total"),
    "passed": ("passedRequests", "passed"),
    "failed": ("failedRequests", "failed"),
    "total_duration_ms": ("totalDuration", "duration"),
}


def _first_present(data: Any, *keys: str) -> Any:
    if not isinstance(data, dict):
        return None
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
    return number if math.isfinite(number) else default


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    return int(_number(value))


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return _number(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _mapping(value: Any) -> dict[str, Any] | None:
    # Header lists and other non-mapping shapes are dropped.
    if not isinstance(value, dict):
        return None
    return {str(key): item for key, item in value.items()}


def _error_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get("message"):
        return str(value["message"])
    return json.dumps(value, default=str)


def extract_json(text: str) -> Any:
    """Find a JSON document in stdout, which may carry log lines around it."""
    stripped = text.strip()
    if not stripped:
        return None
    if stripped[0] in "{[":
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    match = re.search(r"(\{.*\}|\[.*\])", stripped, re.DOTALL)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            return None
    return None


def _summarize(summary_data: Any, results: list[RequestResult]) -> RunSummary:
    """Read summary aliases; fields the payload omits are folded from results."""
    computed = {
        "total": len(results),
        "passed": sum(1 for r in results if r.passed),
        "failed": sum(1 for r in results if not r.passed),
        "total_duration_ms": sum(r.duration_ms for r in results),
    }
    values = {}
    for field, aliases in SUMMARY_ALIASES.items():
        raw = _first_present(summary_data, *aliases)
        values[field] = computed[field] if raw is None else _number(raw)
    return RunSummary(
        total=int(values["total"]),
        passed=int(values["passed"]),
        failed=int(values["failed"]),
        total_duration_ms=values["total_duration_ms"],
    )


def _normalize_assertion(data: Any, pass_status: str, fail_status: str) -> AssertionResult:
    if not isinstance(data, dict):
        return AssertionResult(name=str(data), passed=False)
    name = _first_present(data, "description", "name", "test")
    if name is None and data.get("lhsExpr") is not None:
        name = f"{data['lhsExpr']}: {data.get('rhsExpr', '')}".strip()
    status = data.get("status")
    passed = status == pass_status or data.get("passed") is True
    error = None
    if status == fail_status or (status is None and not passed):
        error = _error_text(_first_present(data, "error", "message"))
    return AssertionResult(name=str(name or ""), passed=passed, error=error)


# -- "results" shape -------------------------------------------------------


def _result_name(entry: dict) -> str:
    name = _first_present(entry, "suitename", "name")
    if name is None:
        name = _first_present(entry.get("test"), "filename")
    return str(name) if name is not None else "Unknown"


def _result_assertions(entry: dict) -> list[AssertionResult]:
    assertions = []
    tests = _first_present(entry, "testResults", "tests", "assertions")
    if isinstance(tests, list):
        assertions.extend(_normalize_assertion(t, "pass", "fail") for t in tests)
    extra = entry.get("assertionResults")
    if isinstance(extra, list):
        assertions.extend(_normalize_assertion(a, "pass", "fail") for a in extra)
    return assertions


def _normalize_result(entry: Any) -> RequestResult:
    if not isinstance(entry, dict):
        return RequestResult(name="Unknown", passed=False)

    request = entry.get("request")
    response = entry.get("response")
    response_time = _first_present(response, "responseTime")

    return RequestResult(
        name=_result_name(entry),
        passed=entry.get("error") is None,
        http_status=int(_number(_first_present(response, "status"))),
        duration_ms=_number(response_time if response_time is not None else entry.get("runtime")),
        error=_error_text(entry.get("error")),
        request=RequestInfo(
            method=_optional_str(request.get("method")),
            url=_optional_str(request.get("url")),
            headers=_mapping(request.get("headers")),
            body=_first_present(request, "body", "data"),
        )
        if isinstance(request, dict)
        else None,
        response=ResponseInfo(
            status=_optional_int(_first_present(response, "status")),
            status_text=_optional_str(response.get("statusText")),
            headers=_mapping(response.get("headers")),
            body=_first_present(response, "data", "body"),
            response_time_ms=_optional_float(response_time),
        )
        if isinstance(response, dict)
        else None,
        assertions=_result_assertions(entry),
    )


def adapt_results_shape(payload: Any, raw: RawOutput) -> CanonicalRunResult | None:
    """``{summary?, results: [...]}`` as written by the executor's JSON reporter."""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        return None
    results = [_normalize_result(entry) for entry in payload["results"]]
    return CanonicalRunResult(
        exit_code=raw.exit_code,
        summary=_summarize(payload.get("summary"), results),
        results=results,
        stdout=raw.stdout,
        stderr=raw.stderr,
    )


# -- "items" shape ---------------------------------------------------------


def _normalize_item(item: Any) -> RequestResult:
    if not isinstance(item, dict):
        return RequestResult(name="Unknown", passed=False)

    request = item.get("request")
    response = item.get("response")
    tests = item.get("tests")

    return RequestResult(
        name=str(item.get("name") or "Unknown"),
        passed=item.get("status") == "passed" or item.get("passed") is not False,
        http_status=int(_number(_first_present(response, "status"))),
        duration_ms=_number(item.get("duration")),
        error=_error_text(item.get("error")),
        request=RequestInfo(
            method=_optional_str(request.get("method")),
            url=_optional_str(request.get("url")),
            headers=_mapping(request.get("headers")),
            body=request.get("body"),
        )
        if isinstance(request, dict)
        else None,
        response=ResponseInfo(
            status=_optional_int(_first_present(response, "status")),
            status_text=_optional_str(response.get("statusText")),
            headers=_mapping(response.get("headers")),
            body=_first_present(response, "body", "data"),
            response_time_ms=_optional_float(_first_present(response, "time", "responseTime")),
        )
        if isinstance(response, dict)
        else None,
        assertions=[_normalize_assertion(t, "passed", "failed") for t in tests]
        if isinstance(tests, list)
        else [],
    )


def adapt_items_shape(payload: Any, raw: RawOutput) -> CanonicalRunResult | None:
    """``{summary?, items: [...]}`` from older report formats."""
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        return None
    results = [_normalize_item(item) for item in payload["items"]]
    return CanonicalRunResult(
        exit_code=raw.exit_code,
        summary=_summarize(payload.get("summary"), results),
        results=results,
        stdout=raw.stdout,
        stderr=raw.stderr,
    )


def adapt_summary_shape(payload: Any, raw: RawOutput) -> CanonicalRunResult | None:
    """A bare ``{summary: {...}}`` without per-request entries."""
    if not isinstance(payload, dict) or not isinstance(payload.get("summary"), dict):
        return None
    return CanonicalRunResult(
        exit_code=raw.exit_code,
        summary=_summarize(payload["summary"], []),
        stdout=raw.stdout,
        stderr=raw.stderr,
    )


SHAPE_ADAPTERS: list[ShapeAdapter] = [
    adapt_results_shape,
    adapt_items_shape,
    adapt_summary_shape,
]


def unwrap(payload: Any) -> Any:
    """Reports are sometimes wrapped in a single-element array."""
    if isinstance(payload, list) and len(payload) == 1:
        return payload[0]
    return payload


def normalize(raw: RawOutput, artifact: Any = None) -> CanonicalRunResult:
    """Build the canonical result from the artifact, or else from stdout."""
    payload = artifact if artifact is not None else extract_json(raw.stdout)
    payload = unwrap(payload)

    if payload is not None:
        for adapter in SHAPE_ADAPTERS:
            result = adapter(payload, raw)
            if result is not None:
                return result
        logger.debug("Unrecognized report shape; keeping raw output")

    return CanonicalRunResult(
        exit_code=raw.exit_code,
        stdout=raw.stdout,
        stderr=raw.stderr,
        degraded=True,
    )
