"""Tests for agent reply selection and extraction."""

from __future__ import annotations

import pytest

from consult_agent_service.agents.client import AgentServiceClient
from consult_agent_service.agents.errors import ExtractionError
from consult_agent_service.agents.extraction import extract_response, select_agent_reply
from consult_agent_service.agents.types import ThreadMessage
from tests.helpers import ENDPOINT, FakeAgentService, agent_message, image_part, text_part, user_message


def _messages(*records: dict) -> list[ThreadMessage]:
    return [ThreadMessage.from_dict(record) for record in records]


class TestSelectAgentReply:
    """Tests for select_agent_reply."""

    def test_picks_newest_agent_message_regardless_of_list_order(self):
        """Ascending and descending listings must select the same reply."""
        older = agent_message("first answer", message_id="m1", created_at=100, run_id=None)
        newer = agent_message("second answer", message_id="m3", created_at=300, run_id=None)
        question = user_message("follow-up", message_id="m2", created_at=200)

        ascending = select_agent_reply(_messages(older, question, newer))
        descending = select_agent_reply(_messages(newer, question, older))

        assert ascending.text == "second answer"
        assert descending.text == "second answer"

    def test_only_messages_from_the_completed_run_qualify(self):
        """A newer reply left by another run must not be picked."""
        mine = agent_message("from run-1", message_id="m1", created_at=100, run_id="run-1")
        other = agent_message("from run-2", message_id="m2", created_at=200, run_id="run-2")

        reply = select_agent_reply(_messages(other, mine), run_id="run-1")

        assert reply.text == "from run-1"
        assert reply.message_id == "m1"

    def test_messages_without_run_id_still_qualify(self):
        reply = select_agent_reply(_messages(agent_message("hi", run_id=None)), run_id="run-1")

        assert reply.text == "hi"

    def test_first_text_part_wins(self):
        message = agent_message(parts=[image_part("file-1"), text_part("one"), text_part("two")])

        reply = select_agent_reply(_messages(message))

        assert reply.text == "one"
        assert reply.attachments == ("file-1",)

    def test_no_text_part_is_extraction_error(self):
        message = agent_message(parts=[image_part("file-1")])

        with pytest.raises(ExtractionError, match="no text"):
            select_agent_reply(_messages(message))

    def test_empty_text_is_extraction_error(self):
        with pytest.raises(ExtractionError):
            select_agent_reply(_messages(agent_message("")))

    def test_only_user_messages_is_extraction_error(self):
        with pytest.raises(ExtractionError, match="No assistant response found"):
            select_agent_reply(_messages(user_message("Hi")))

    def test_plain_string_content_is_text(self):
        message = {"id": "m1", "role": "agent", "created_at": 1, "content": "plain reply"}

        assert select_agent_reply(_messages(message)).text == "plain reply"


class TestExtractResponse:
    """Tests for extract_response against the fake service."""

    @pytest.mark.asyncio
    async def test_lists_messages_newest_first(self):
        service = FakeAgentService()
        async with AgentServiceClient(ENDPOINT, "t", "2025-05-01", transport=service.transport) as client:
            reply = await extract_response(client, "thread-1", "run-1", page_size=10)

        assert reply.text == "Hello"
        [request] = service.calls("get_messages")
        assert request.url.params["order"] == "desc"
        assert request.url.params["limit"] == "10"

    @pytest.mark.asyncio
    async def test_is_idempotent(self):
        """Extracting twice from the same completed thread gives the same payload."""
        service = FakeAgentService(
            messages=[agent_message("Plan: ECG, troponin"), user_message("Hi")],
        )
        async with AgentServiceClient(ENDPOINT, "t", "2025-05-01", transport=service.transport) as client:
            first = await extract_response(client, "thread-1", "run-1")
            second = await extract_response(client, "thread-1", "run-1")

        assert first == second
        assert service.steps == ["get_messages", "get_messages"]

    @pytest.mark.asyncio
    async def test_extraction_error_carries_thread(self):
        service = FakeAgentService(messages=[user_message("Hi")])
        async with AgentServiceClient(ENDPOINT, "t", "2025-05-01", transport=service.transport) as client:
            with pytest.raises(ExtractionError) as exc_info:
                await extract_response(client, "thread-1", "run-1")

        assert exc_info.value.thread_id == "thread-1"
        assert exc_info.value.run_id == "run-1"

    @pytest.mark.asyncio
    async def test_custom_selector(self):
        service = FakeAgentService()

        def shout(messages, run_id):
            reply = select_agent_reply(messages, run_id)
            return type(reply)(text=reply.text.upper(), message_id=reply.message_id)

        async with AgentServiceClient(ENDPOINT, "t", "2025-05-01", transport=service.transport) as client:
            reply = await extract_response(client, "thread-1", "run-1", selector=shout)

        assert reply.text == "HELLO"
