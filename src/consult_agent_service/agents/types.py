"""Agent service type definitions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RunStatus(str, Enum):
    """Status of a run on the remote agent service."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    @property
    def is_failure(self) -> bool:
        return self in _FAILURE_STATUSES

    @classmethod
    def parse(cls, value: Any) -> RunStatus:
        """Map a wire status string to a RunStatus. Unknown values count as in progress."""
        if isinstance(value, RunStatus):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning("[AGENT_RUN] Unknown run status %r, treating as in_progress", value)
            return cls.IN_PROGRESS


_FAILURE_STATUSES = frozenset({RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.EXPIRED})
_TERMINAL_STATUSES = _FAILURE_STATUSES | {RunStatus.COMPLETED}


class MessageRole(str, Enum):
    """Author of a thread message."""

    USER = "user"
    AGENT = "agent"

    @classmethod
    def parse(cls, value: Any) -> MessageRole | None:
        # The REST API reports agent messages as "assistant"
        role = str(value or "").lower()
        if role in ("agent", "assistant"):
            return cls.AGENT
        if role == "user":
            return cls.USER
        return None


@dataclass(frozen=True)
class ConversationThread:
    """Reference to a thread owned by the remote service."""

    id: str
    reused: bool = False


@dataclass(frozen=True)
class MessageContentPart:
    """One content part of a thread message.

    Text parts carry ``text``. Everything else (image files, image urls,
    attachments) is kept as an opaque ``reference`` and never rendered.
    """

    type: str
    text: str | None = None
    reference: str | None = None

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageContentPart:
        part_type = str(data.get("type") or "unknown")
        if part_type == "text":
            text = data.get("text")
            # {"type": "text", "text": {"value": "...", "annotations": []}}
            if isinstance(text, dict):
                text = text.get("value")
            return cls(type=part_type, text=text if isinstance(text, str) else None)

        body = data.get(part_type)
        reference = None
        if isinstance(body, dict):
            reference = body.get("file_id") or body.get("url") or body.get("id")
        elif isinstance(body, str):
            reference = body
        return cls(type=part_type, reference=reference)


@dataclass(frozen=True)
class ThreadMessage:
    """A message on a thread. Immutable once created."""

    id: str
    role: MessageRole | None
    content: tuple[MessageContentPart, ...] = ()
    created_at: int = 0
    run_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ThreadMessage:
        raw_content = data.get("content")
        if isinstance(raw_content, str):
            parts: tuple[MessageContentPart, ...] = (MessageContentPart(type="text", text=raw_content),)
        elif isinstance(raw_content, list):
            parts = tuple(
                MessageContentPart.from_dict(part) for part in raw_content if isinstance(part, dict)
            )
        else:
            parts = ()

        created_at = data.get("created_at")
        return cls(
            id=str(data.get("id") or ""),
            role=MessageRole.parse(data.get("role")),
            content=parts,
            created_at=int(created_at) if isinstance(created_at, (int, float)) else 0,
            run_id=data.get("run_id") or None,
        )


@dataclass(frozen=True)
class RunError:
    code: str | None = None
    message: str | None = None

    def describe(self) -> str | None:
        if self.code and self.message:
            return f"{self.code}: {self.message}"
        return self.message or self.code


@dataclass(frozen=True)
class AgentRun:
    """Snapshot of a run as last observed on the remote service."""

    id: str
    thread_id: str
    agent_id: str | None
    status: RunStatus
    last_error: RunError | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], thread_id: str) -> AgentRun:
        raw_error = data.get("last_error")
        last_error = None
        if isinstance(raw_error, dict):
            last_error = RunError(code=raw_error.get("code"), message=raw_error.get("message"))
        elif isinstance(raw_error, str) and raw_error:
            last_error = RunError(message=raw_error)

        return cls(
            id=str(data["id"]),
            thread_id=str(data.get("thread_id") or thread_id),
            agent_id=data.get("assistant_id") or data.get("agent_id"),
            status=RunStatus.parse(data.get("status") or RunStatus.QUEUED.value),
            last_error=last_error,
        )


@dataclass(frozen=True)
class AgentRequest:
    """Validated inbound request for one workflow variant.

    Chat requests carry ``message``; structured extraction requests carry
    ``draft`` and ``schema``.
    """

    message: str | None = None
    draft: str | None = None
    schema: str | None = None
    thread_id: str | None = None
    timeout_seconds: float | None = None


@dataclass(frozen=True)
class ExtractedReply:
    """Payload pulled out of the selected agent message."""

    text: str
    message_id: str
    attachments: tuple[str, ...] = ()


@dataclass
class AgentResult:
    """Uniform outcome of one orchestrator invocation."""

    success: bool
    payload: str | None = None
    thread_id: str | None = None
    run_id: str | None = None
    error: str | None = None
    code: str | None = None
    attachments: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.success and (self.payload is None or self.error is not None):
            raise ValueError("successful result requires a payload and no error")
        if not self.success and (self.payload is not None or not self.error):
            raise ValueError("failed result requires an error and no payload")

    @classmethod
    def ok(
        cls,
        payload: str,
        thread_id: str,
        run_id: str | None = None,
        attachments: list[str] | None = None,
    ) -> AgentResult:
        return cls(
            success=True,
            payload=payload,
            thread_id=thread_id,
            run_id=run_id,
            attachments=list(attachments or []),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to the camelCase body returned to the browser."""
        if self.success:
            return {
                "success": True,
                "payload": self.payload,
                "threadId": self.thread_id,
                "runId": self.run_id,
                "attachments": self.attachments,
            }
        return {
            "success": False,
            "error": self.error,
            "code": self.code,
            "threadId": self.thread_id,
            "runId": self.run_id,
        }
