"""Workflow variants served by the orchestrator.

Both variants share one thread/message/run/poll/extract sequence and one
timing policy. They differ only in how the request is validated, how the
user message is built, and which agent runs it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..config import Settings
from .extraction import ResponseSelector, select_agent_reply
from .types import AgentRequest
from .validation import validate_chat_request, validate_extraction_request


@dataclass(frozen=True)
class AgentWorkflow:
    name: str
    validate: Callable[[Any], AgentRequest]
    build_message: Callable[[AgentRequest], str]
    resolve_agent_id: Callable[[Settings], str | None]
    select_response: ResponseSelector = select_agent_reply


def build_extraction_message(request: AgentRequest) -> str:
    return f"ConsultDraft:\n{request.draft}\n\nJSON Schema:\n{request.schema}"


def build_chat_message(request: AgentRequest) -> str:
    return request.message or ""


EXTRACTION_WORKFLOW = AgentWorkflow(
    name="consult_extraction",
    validate=validate_extraction_request,
    build_message=build_extraction_message,
    resolve_agent_id=lambda settings: settings.azure_ai_agent_id,
)

CHAT_WORKFLOW = AgentWorkflow(
    name="chat",
    validate=validate_chat_request,
    build_message=build_chat_message,
    resolve_agent_id=lambda settings: settings.effective_chat_agent_id,
)
