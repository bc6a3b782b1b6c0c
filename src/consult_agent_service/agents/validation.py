"""Inbound request validation for the chat and extraction workflows.

Runs before any token is acquired or any network call is made.
"""

from __future__ import annotations

import json
from typing import Any

import pydantic
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .errors import ValidationError
from .types import AgentRequest


class AgentRequestBody(BaseModel):
    """Raw request body. Accepts the browser's camelCase and snake_case names."""

    model_config = ConfigDict(extra="ignore")

    message: str | None = None
    consult_draft: str | None = Field(
        default=None, validation_alias=AliasChoices("consultDraft", "consult_draft", "draft")
    )
    draft_schema: str | None = Field(
        default=None, validation_alias=AliasChoices("jsonSchema", "json_schema", "schema")
    )
    thread_id: str | None = Field(default=None, validation_alias=AliasChoices("threadId", "thread_id"))
    timeout_seconds: float | None = Field(
        default=None, gt=0, validation_alias=AliasChoices("timeoutSeconds", "timeout_seconds")
    )

    @field_validator("draft_schema", mode="before")
    @classmethod
    def _serialize_schema_object(cls, value: Any) -> Any:
        # The schema may arrive as a parsed JSON object instead of a string
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False) if value else ""
        return value

    @field_validator("message", "consult_draft", "draft_schema", "thread_id")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value


def _parse(body: Any) -> AgentRequestBody:
    if not isinstance(body, dict):
        raise ValidationError("Invalid request: body must be a JSON object", step="validate")
    try:
        return AgentRequestBody.model_validate(body)
    except pydantic.ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(f"Invalid request: {problems}", step="validate", cause=e) from e


def validate_chat_request(body: Any) -> AgentRequest:
    """Require a non-blank ``message``. Extraction fields are not allowed."""
    parsed = _parse(body)
    if parsed.consult_draft or parsed.draft_schema:
        raise ValidationError(
            "Invalid request: chat requests must not include ConsultDraft or JsonSchema",
            step="validate",
        )
    if not parsed.message:
        raise ValidationError("Message is required", step="validate")
    return AgentRequest(
        message=parsed.message,
        thread_id=parsed.thread_id,
        timeout_seconds=parsed.timeout_seconds,
    )


def validate_extraction_request(body: Any) -> AgentRequest:
    """Require non-blank ``consultDraft`` and ``jsonSchema``. A chat message is not allowed."""
    parsed = _parse(body)
    if parsed.message:
        raise ValidationError(
            "Invalid request: extraction requests must not include a chat message",
            step="validate",
        )
    if not parsed.consult_draft or not parsed.draft_schema:
        raise ValidationError(
            "Invalid request: ConsultDraft and JsonSchema are required", step="validate"
        )
    return AgentRequest(
        draft=parsed.consult_draft,
        schema=parsed.draft_schema,
        thread_id=parsed.thread_id,
        timeout_seconds=parsed.timeout_seconds,
    )
