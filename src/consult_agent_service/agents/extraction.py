"""Response extraction from a completed run's thread."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from .client import AgentServiceClient
from .errors import ExtractionError
from .types import ExtractedReply, MessageRole, ThreadMessage

logger = logging.getLogger(__name__)

ResponseSelector = Callable[[Sequence[ThreadMessage], Optional[str]], ExtractedReply]


def select_agent_reply(messages: Sequence[ThreadMessage], run_id: str | None = None) -> ExtractedReply:
    """Pick the newest agent message of ``run_id`` and return its first text part.

    Messages are ordered here by ``created_at`` (newest first) rather than
    trusting the order the service listed them in. Messages that report a
    ``run_id`` only qualify when it matches. Non-text parts are returned as
    opaque attachment references.
    """
    # sorted() is stable: ties keep the service's (newest first) order
    newest_first = sorted(messages, key=lambda m: m.created_at, reverse=True)
    candidates = [
        message
        for message in newest_first
        if message.role is MessageRole.AGENT
        and (run_id is None or message.run_id is None or message.run_id == run_id)
    ]
    if not candidates:
        raise ExtractionError("No assistant response found", step="extract_response", run_id=run_id)

    reply = candidates[0]
    text = next((part.text for part in reply.content if part.is_text and part.text), None)
    if text is None:
        raise ExtractionError(
            "Assistant response contained no text", step="extract_response", run_id=run_id
        )

    attachments = tuple(
        part.reference for part in reply.content if not part.is_text and part.reference
    )
    return ExtractedReply(text=text, message_id=reply.id, attachments=attachments)


async def extract_response(
    client: AgentServiceClient,
    thread_id: str,
    run_id: str | None = None,
    *,
    page_size: int = 20,
    selector: ResponseSelector = select_agent_reply,
) -> ExtractedReply:
    """List the thread's messages and select the reply produced by ``run_id``. Read-only."""
    messages = await client.list_messages(thread_id, order="desc", limit=page_size, run_id=run_id)
    if not messages:
        raise ExtractionError(
            "No messages received", step="extract_response", thread_id=thread_id, run_id=run_id
        )

    try:
        reply = selector(messages, run_id)
    except ExtractionError as e:
        raise e.with_context(thread_id=thread_id)

    logger.info(
        "[AGENT_RUN] Extracted reply %s from thread %s (%d chars, %d attachments)",
        reply.message_id,
        thread_id,
        len(reply.text),
        len(reply.attachments),
    )
    return reply
