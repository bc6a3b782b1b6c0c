"""Failure taxonomy for agent run orchestration.

Every failure the orchestrator can hit is raised as one of these errors and
converted to a failed :class:`AgentResult` at the orchestrator boundary.
Each kind carries the wire ``code`` and the HTTP status the API layer uses.
"""

from __future__ import annotations

from typing import Any

from .types import AgentResult, RunStatus

# Upstream bodies are kept for logs only, cut to this length
MAX_BODY_LOG_CHARS = 500


class AgentServiceError(Exception):
    """Base error for the consult agent service."""

    code = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        thread_id: str | None = None,
        run_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.thread_id = thread_id
        self.run_id = run_id
        self.cause = cause

    def with_context(self, **context: Any) -> AgentServiceError:
        """Fill in step/thread/run context that was not known where the error was raised."""
        for key in ("step", "thread_id", "run_id"):
            if getattr(self, key) is None and context.get(key) is not None:
                setattr(self, key, context[key])
        return self

    def log_context(self) -> str:
        return f"step={self.step} thread={self.thread_id} run={self.run_id}"

    def to_result(self) -> AgentResult:
        return AgentResult(
            success=False,
            error=self.message,
            code=self.code,
            thread_id=self.thread_id,
            run_id=self.run_id,
        )


class ValidationError(AgentServiceError):
    """The inbound request is missing or has malformed required fields."""

    code = "validation_error"
    status_code = 400


class ConfigurationError(AgentServiceError):
    """Endpoint or agent id is not configured."""

    code = "configuration_error"
    status_code = 500


class AuthenticationError(AgentServiceError):
    """Bearer token could not be acquired in time."""

    code = "authentication_error"
    status_code = 502


class UpstreamError(AgentServiceError):
    """The agent service answered with a non-2xx status, a malformed record, or not at all."""

    code = "upstream_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int | None = None,
        body: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status
        self.body = body[:MAX_BODY_LOG_CHARS] if body else body

    def log_context(self) -> str:
        return f"{super().log_context()} upstream_status={self.upstream_status} body={self.body!r}"


class RunTerminalError(AgentServiceError):
    """The run ended in failed, cancelled or expired."""

    code = "run_error"
    status_code = 502

    def __init__(self, status: RunStatus, detail: str | None = None, **kwargs: Any):
        message = f"Agent run ended with status: {status.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, **kwargs)
        self.status = status
        self.detail = detail


class RunTimeoutError(AgentServiceError):
    """Polling budget or request deadline exhausted, or the caller went away."""

    code = "timeout_error"
    status_code = 504


class ExtractionError(AgentServiceError):
    """The run completed but left no usable agent reply."""

    code = "extraction_error"
    status_code = 502


class InternalError(AgentServiceError):
    """Anything not anticipated by the other kinds."""

    code = "internal_error"
    status_code = 500


_STATUS_BY_CODE = {
    kind.code: kind.status_code
    for kind in (
        ValidationError,
        ConfigurationError,
        AuthenticationError,
        UpstreamError,
        RunTerminalError,
        RunTimeoutError,
        ExtractionError,
        InternalError,
    )
}


def status_for_code(code: str | None) -> int:
    """HTTP status the API answers with for an error ``code``."""
    return _STATUS_BY_CODE.get(code or "", 500)
