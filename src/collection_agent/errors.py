"""Typed error classification for collection operations.

Structural gaps in parsed files never raise; these exceptions cover the
cases a caller has to decide about (retry, fix setup, or surface).
"""


class CollectionAgentError(Exception):
    """Base class. ``kind`` is a stable identifier callers can switch on."""

    kind = "error"


class CollectionNotFoundError(CollectionAgentError):
    kind = "collection_not_found"


class InvalidCollectionError(CollectionAgentError):
    kind = "invalid_collection"


class EnvironmentNotFoundError(CollectionAgentError):
    kind = "environment_not_found"


class RequestNotFoundError(CollectionAgentError):
    kind = "request_not_found"


class ExecutorNotFoundError(CollectionAgentError):
    """The external executable could not be started at all."""

    kind = "executor_not_found"


class ExecutionTimeoutError(CollectionAgentError):
    kind = "execution_timeout"

    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout


class ExecutionFailedError(CollectionAgentError):
    """The executor ran but produced no usable result."""

    kind = "execution_failed"

    def __init__(self, message: str, exit_code: int, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class ConfigError(CollectionAgentError):
    kind = "config_error"
