"""Agent run orchestration module."""

from .credentials import TokenSource, get_token_source
from .errors import (
    AgentServiceError,
    AuthenticationError,
    ConfigurationError,
    ExtractionError,
    InternalError,
    RunTerminalError,
    RunTimeoutError,
    UpstreamError,
    ValidationError,
)
from .orchestrator import AgentRunOrchestrator
from .polling import RunPolicy
from .types import AgentResult
from .workflows import CHAT_WORKFLOW, EXTRACTION_WORKFLOW, AgentWorkflow

__all__ = [
    "AgentResult",
    "AgentRunOrchestrator",
    "AgentServiceError",
    "AgentWorkflow",
    "AuthenticationError",
    "CHAT_WORKFLOW",
    "ConfigurationError",
    "EXTRACTION_WORKFLOW",
    "ExtractionError",
    "InternalError",
    "RunPolicy",
    "RunTerminalError",
    "RunTimeoutError",
    "TokenSource",
    "UpstreamError",
    "ValidationError",
    "get_token_source",
]
