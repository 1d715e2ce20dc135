"""Interaction router.

Routes each inbound interaction to the first matching feature and
owns the one-time publication of command features to the platform,
tracked per application id.

Key classes:
    InteractionRouter: Registry front end, command publisher and
        dispatcher.
"""

import asyncio
import inspect
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from .exceptions import (
    AlreadyRegisteredError,
    RemoteDeletionError,
    RemoteRegistrationError,
)
from .features import Feature
from .interactions import InteractionKind
from .registry import FeatureRegistry
from .session import InteractionEvent, PlatformSession

logger = structlog.get_logger("switchboard.router")


class InteractionRouter:
    """Dispatches interactions and publishes commands.

    Setup (add_feature/add_features/publish_commands) happens before
    listen(); once listening, the registry is frozen and route() only
    reads it, so overlapping route calls are safe. Publication
    bookkeeping is guarded by an asyncio.Lock, created on first use in
    the running event loop so a router built at import time works
    under asyncio.run().

    Args:
        registry: Registry to route against. A fresh one is created
            when omitted.
    """

    def __init__(self, registry: Optional[FeatureRegistry] = None):
        self.registry = registry if registry is not None else FeatureRegistry()
        # application_id -> remote command ids still registered
        self._command_ids: Dict[str, List[str]] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self._listening: List[Any] = []

    def _bookkeeping_lock(self) -> asyncio.Lock:
        """Lock for the running loop, replaced when the loop changes."""
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def add_feature(self, feature: Feature) -> None:
        """Register a feature. See FeatureRegistry.add_feature."""
        self.registry.add_feature(feature)

    def add_features(self, features: Iterable[Feature]) -> None:
        """Register features in order. See FeatureRegistry.add_features."""
        self.registry.add_features(features)

    def registered_command_ids(self, application_id: str) -> Tuple[str, ...]:
        """Ids recorded for an application that have not been deleted."""
        return tuple(self._command_ids.get(application_id, ()))

    async def publish_commands(
        self, session: PlatformSession, guild_id: str = ""
    ) -> None:
        """Overwrite the scope's commands with every command feature.

        Sends the command definition of each COMMAND and AUTOCOMPLETE
        feature, in registry order, in a single bulk overwrite. This
        replaces whatever was registered in the scope before. Allowed
        once per application id per router.

        Args:
            session: Active platform session; its application_id is
                the identity the commands are recorded under.
            guild_id: Guild to register in. Empty string for global.

        Raises:
            AlreadyRegisteredError: Commands were already published for
                this application. No remote call is made.
            RemoteRegistrationError: The overwrite call failed. Nothing
                is recorded, so a later call may try again.
        """
        application_id = session.application_id
        async with self._bookkeeping_lock():
            if application_id in self._command_ids:
                raise AlreadyRegisteredError(application_id=application_id)

            specs = self.registry.command_specs()
            logger.info(
                "commands_publishing",
                application_id=application_id,
                scope=guild_id or "global",
                commands=[spec.get("name") for spec in specs],
            )
            try:
                created = await session.bulk_overwrite_commands(
                    application_id, guild_id, specs
                )
            except Exception as e:
                logger.error(
                    "commands_publish_failed",
                    application_id=application_id,
                    scope=guild_id or "global",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise RemoteRegistrationError(
                    application_id=application_id, guild_id=guild_id
                ) from e

            self._command_ids[application_id] = [str(cmd.id) for cmd in created]

        logger.info(
            "commands_published",
            application_id=application_id,
            scope=guild_id or "global",
            command_ids=self._command_ids[application_id],
        )

    async def unpublish_commands(
        self, session: PlatformSession, guild_id: str = ""
    ) -> None:
        """Delete every command this router published for the application.

        Deletes run one at a time in the order the platform returned
        the commands. Each id is dropped from the bookkeeping as soon
        as its delete succeeds, so calling again after a failure
        resumes with the ids still outstanding. The application stays
        marked as published either way.

        Raises:
            RemoteDeletionError: A delete failed. Processing stopped
                there; later commands are still registered.
        """
        application_id = session.application_id
        async with self._bookkeeping_lock():
            pending = self._command_ids.get(application_id)
            if not pending:
                logger.debug(
                    "commands_unpublish_nothing_recorded",
                    application_id=application_id,
                )
                return

            while pending:
                command_id = pending[0]
                try:
                    await session.delete_command(application_id, guild_id, command_id)
                except Exception as e:
                    logger.error(
                        "command_delete_failed",
                        application_id=application_id,
                        scope=guild_id or "global",
                        command_id=command_id,
                        remaining=len(pending),
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise RemoteDeletionError(
                        application_id=application_id,
                        guild_id=guild_id,
                        command_id=command_id,
                    ) from e
                pending.pop(0)
                logger.info(
                    "command_deleted",
                    application_id=application_id,
                    scope=guild_id or "global",
                    command_id=command_id,
                )

    async def route(self, session: Any, interaction: InteractionEvent) -> Any:
        """Run the handler of the first feature matching the interaction.

        Components match on custom id, every other kind on name.
        Unmatched interactions are ignored. Handler errors propagate
        to the caller unchanged.

        Returns:
            The handler's result, or None when nothing matched.
        """
        kind = interaction.kind
        if kind == InteractionKind.MESSAGE_COMPONENT:
            discriminator = interaction.custom_id
        else:
            discriminator = interaction.name

        feature = self.registry.match(kind, discriminator)
        if feature is None:
            return None

        result = feature.handler(session, interaction)
        if inspect.isawaitable(result):
            result = await result
        return result

    def listen(self, session: PlatformSession) -> None:
        """Freeze the registry and route every event the session delivers.

        Subscribes at most once per session; repeat calls are no-ops.
        """
        self.registry.freeze()
        if any(s is session for s in self._listening):
            logger.debug("router_already_listening")
            return
        self._listening.append(session)
        session.add_interaction_handler(self.route)
        logger.info("router_listening", features=len(self.registry))
