"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest

from consult_agent_service.agents.orchestrator import AgentRunOrchestrator
from consult_agent_service.config import Settings
from tests.helpers import ENDPOINT, FakeAgentService, FakeTokenSource


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake agent service with a fast poll loop."""
    return Settings(
        _env_file=None,
        AZURE_AI_ENDPOINT=ENDPOINT,
        AZURE_AI_AGENT_ID="asst-consult",
        AZURE_AI_CHAT_AGENT_ID="asst-chat",
        AGENT_POLL_INTERVAL_SECONDS=0.01,
        AGENT_MAX_POLL_ATTEMPTS=5,
        AGENT_SETUP_ALLOWANCE_SECONDS=5,
        AGENT_CANCEL_ON_TIMEOUT=False,
    )


@pytest.fixture
def fake_service() -> FakeAgentService:
    return FakeAgentService()


@pytest.fixture
def token_source() -> FakeTokenSource:
    return FakeTokenSource()


@pytest.fixture
def orchestrator(settings, token_source, fake_service) -> AgentRunOrchestrator:
    return AgentRunOrchestrator(settings, token_source, transport=fake_service.transport)


@pytest.fixture
def chat_body() -> dict:
    return {"message": "Hi"}


@pytest.fixture
def extraction_body() -> dict:
    return {
        "consultDraft": "72M with chest pain radiating to the left arm, onset 2h ago.",
        "jsonSchema": '{"type": "object", "properties": {"chiefComplaint": {"type": "string"}}}',
    }
