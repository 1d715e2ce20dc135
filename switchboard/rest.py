"""REST session for the platform's HTTP API.

A thin aiohttp implementation of PlatformSession for hosts that do
not already have a platform client. It makes exactly the calls the
router needs (bulk overwrite, delete, application lookup) and fans
raw interaction payloads the host receives out to subscribed
callbacks. Rate limiting, retries and the gateway connection are left
to the host.

Key classes:
    CreatedCommand: Pydantic model of a command record returned by
        the API.
    RestSession: Session with command endpoints and payload dispatch.
"""

import asyncio
from typing import Any, List, Mapping, Optional, Sequence

import aiohttp
import structlog
from pydantic import BaseModel, ConfigDict

from .config import DEFAULT_API_BASE_URL, Config
from .exceptions import ConfigurationError, PlatformAPIError
from .interactions import Interaction
from .session import InteractionCallback

logger = structlog.get_logger("switchboard.rest")


class CreatedCommand(BaseModel):
    """A command as registered on the platform.

    Unknown fields returned by the API are kept.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    application_id: Optional[str] = None
    guild_id: Optional[str] = None
    version: Optional[str] = None


class RestSession:
    """PlatformSession backed by the platform REST API.

    Use as an async context manager, or call start() and close().

    Args:
        token: Bot token, sent as ``Authorization: Bot <token>``.
        application_id: The bot's application id. Looked up from the
            API in start() when omitted.
        api_base_url: Versioned API root, without trailing slash.
        timeout: Total timeout in seconds per request.
    """

    def __init__(
        self,
        token: str,
        application_id: Optional[str] = None,
        api_base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 10.0,
    ):
        self.token = token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self._application_id = application_id
        self._session: Optional[aiohttp.ClientSession] = None
        self._callbacks: List[InteractionCallback] = []

        if not self.token:
            logger.warning("rest_token_not_set")

    @classmethod
    def from_config(cls, config: Config) -> "RestSession":
        """Build a session from configuration. Requires a bot token."""
        return cls(
            token=config.require_bot_token(),
            application_id=config.application_id,
            api_base_url=config.api_base_url,
            timeout=config.request_timeout,
        )

    @property
    def application_id(self) -> str:
        if self._application_id is None:
            raise ConfigurationError(
                "Session not started: application_id not available",
                setting_name="application_id",
            )
        return self._application_id

    async def start(self) -> None:
        """Open the HTTP session and resolve the application id."""
        await self._get_session()
        if self._application_id is None:
            self._application_id = await self.fetch_application_id()
        logger.info("rest_session_started", application_id=self._application_id)

    async def close(self) -> None:
        """Close the shared HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "RestSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    def _build_headers(self) -> dict:
        return {
            "Authorization": f"Bot {self.token}",
            "Content-Type": "application/json",
        }

    def _commands_url(self, application_id: str, guild_id: str) -> str:
        """Command collection URL for the global or a guild scope."""
        if guild_id:
            return (
                f"{self.api_base_url}/applications/{application_id}"
                f"/guilds/{guild_id}/commands"
            )
        return f"{self.api_base_url}/applications/{application_id}/commands"

    async def _request(
        self, method: str, url: str, payload: Optional[Any] = None
    ) -> Any:
        """Perform one API call.

        Returns:
            Decoded JSON body, or None for 204 responses.

        Raises:
            PlatformAPIError: On any non-2xx status.
            aiohttp.ClientError, asyncio.TimeoutError: On transport
                failure.
        """
        session = await self._get_session()
        try:
            async with session.request(
                method,
                url,
                json=payload,
                headers=self._build_headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status == 204:
                    return None
                if 200 <= resp.status < 300:
                    return await resp.json()
                body = await resp.text()
                logger.warning(
                    "rest_request_failed",
                    method=method,
                    url=url,
                    status=resp.status,
                    body=body[:200],
                )
                raise PlatformAPIError(status=resp.status, body=body)
        except asyncio.TimeoutError:
            logger.warning("rest_request_timeout", method=method, url=url, timeout=self.timeout)
            raise

    async def fetch_application_id(self) -> str:
        """Look up the bot's own application id."""
        data = await self._request("GET", f"{self.api_base_url}/oauth2/applications/@me")
        return str(data["id"])

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        guild_id: str,
        commands: Sequence[Mapping[str, Any]],
    ) -> List[CreatedCommand]:
        """Replace every command in the scope with ``commands``."""
        data = await self._request(
            "PUT",
            self._commands_url(application_id, guild_id),
            [dict(c) for c in commands],
        )
        created = [CreatedCommand.model_validate(item) for item in data or []]
        logger.debug(
            "rest_commands_overwritten",
            scope=guild_id or "global",
            count=len(created),
        )
        return created

    async def delete_command(
        self, application_id: str, guild_id: str, command_id: str
    ) -> None:
        """Delete one command from the scope."""
        await self._request(
            "DELETE", f"{self._commands_url(application_id, guild_id)}/{command_id}"
        )

    def add_interaction_handler(self, callback: InteractionCallback) -> None:
        """Subscribe a callback to every payload passed to dispatch()."""
        self._callbacks.append(callback)

    async def dispatch(self, payload: dict) -> None:
        """Parse a raw interaction payload and deliver it to subscribers.

        Callbacks run in subscription order. A callback error
        propagates and later callbacks are not run.

        Raises:
            pydantic.ValidationError: If the payload is not a known
                interaction.
        """
        interaction = Interaction.from_payload(payload)
        for callback in list(self._callbacks):
            await callback(self, interaction)
