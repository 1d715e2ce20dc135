"""Interfaces the router consumes from the chat platform client.

The router never talks to the network itself. Anything that provides
the members below can be passed as a session: the bundled
RestSession, a wrapper around a gateway client, or a test double.
"""

from typing import (
    Any,
    Awaitable,
    Callable,
    Mapping,
    Protocol,
    Sequence,
    runtime_checkable,
)

from .interactions import InteractionKind


@runtime_checkable
class InteractionEvent(Protocol):
    """What the router reads from an inbound event."""

    @property
    def kind(self) -> InteractionKind: ...

    @property
    def name(self) -> str: ...

    @property
    def custom_id(self) -> str: ...


class CreatedCommand(Protocol):
    """A command record returned by the bulk overwrite call."""

    @property
    def id(self) -> str: ...


# Handler signature: (session, interaction) -> anything; coroutines are awaited
Handler = Callable[[Any, Any], Any]

# Subscription callback signature used by add_interaction_handler
InteractionCallback = Callable[[Any, Any], Awaitable[Any]]


@runtime_checkable
class PlatformSession(Protocol):
    """An active connection to the chat platform."""

    @property
    def application_id(self) -> str:
        """The caller's own application identity."""
        ...

    async def bulk_overwrite_commands(
        self,
        application_id: str,
        guild_id: str,
        commands: Sequence[Mapping[str, Any]],
    ) -> Sequence[CreatedCommand]:
        """Replace every command in the scope with ``commands``.

        An empty ``guild_id`` means the global scope.
        """
        ...

    async def delete_command(
        self, application_id: str, guild_id: str, command_id: str
    ) -> None:
        """Delete one command from the scope."""
        ...

    def add_interaction_handler(self, callback: InteractionCallback) -> None:
        """Invoke ``callback(session, interaction)`` for every inbound event."""
        ...
