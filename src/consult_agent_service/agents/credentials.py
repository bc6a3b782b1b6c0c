"""Bearer token sources for the agent service.

The orchestrator only sees the :class:`TokenSource` protocol. The Azure
credential is built once per process and owns its own token cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from azure.core.exceptions import ClientAuthenticationError
from azure.identity.aio import DefaultAzureCredential

from ..config import Settings
from .errors import AuthenticationError

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    async def get_token(self, timeout: float) -> str:
        """Return a bearer token, raising AuthenticationError on failure or timeout."""
        ...

    async def close(self) -> None:
        ...


class StaticTokenSource:
    """Fixed token. For local development against a token minted elsewhere."""

    def __init__(self, token: str):
        self._token = token

    async def get_token(self, timeout: float) -> str:
        return self._token

    async def close(self) -> None:
        return None


class AzureCredentialTokenSource:
    """Token source backed by ``DefaultAzureCredential``."""

    def __init__(self, scope: str, credential: DefaultAzureCredential | None = None):
        self.scope = scope
        self._credential = credential or DefaultAzureCredential(
            # Server environment: skip developer-desktop credentials
            exclude_visual_studio_code_credential=True,
            exclude_powershell_credential=True,
        )

    async def get_token(self, timeout: float) -> str:
        try:
            access_token = await asyncio.wait_for(
                self._credential.get_token(self.scope), timeout=timeout
            )
        except asyncio.TimeoutError as e:
            logger.error("[CREDENTIALS] Token acquisition timed out after %.1fs", timeout)
            raise AuthenticationError("Authentication timeout", step="authenticate", cause=e) from e
        except ClientAuthenticationError as e:
            logger.error("[CREDENTIALS] Authentication failed: %s", e.message)
            raise AuthenticationError("Authentication failed", step="authenticate", cause=e) from e
        return access_token.token

    async def close(self) -> None:
        await self._credential.close()


_token_source: TokenSource | None = None


def get_token_source(settings: Settings) -> TokenSource:
    """Build and cache the process-wide token source."""
    global _token_source
    if _token_source is not None:
        return _token_source
    if settings.azure_ai_static_token:
        logger.warning("[CREDENTIALS] Using static bearer token from AZURE_AI_STATIC_TOKEN")
        _token_source = StaticTokenSource(settings.azure_ai_static_token)
    else:
        _token_source = AzureCredentialTokenSource(settings.azure_ai_token_scope)
    return _token_source


async def close_token_source() -> None:
    global _token_source
    if _token_source is not None:
        await _token_source.close()
        _token_source = None
