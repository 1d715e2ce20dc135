"""Tests for the interaction router."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.exceptions import (
    AlreadyRegisteredError,
    RegistryFrozenError,
    RemoteDeletionError,
    RemoteRegistrationError,
)
from switchboard.features import (
    AutocompleteFeature,
    CommandFeature,
    ComponentFeature,
    ModalFeature,
)
from switchboard.interactions import Interaction, InteractionKind
from switchboard.router import InteractionRouter


class FakeSession:
    """Stand-in for a platform session with mocked remote calls."""

    def __init__(self, application_id="111", created_ids=("101", "102")):
        self.application_id = application_id
        self.bulk_overwrite_commands = AsyncMock(
            return_value=[SimpleNamespace(id=i) for i in created_ids]
        )
        self.delete_command = AsyncMock()
        self.callbacks = []

    def add_interaction_handler(self, callback):
        self.callbacks.append(callback)


def _command(name, handler=None):
    return CommandFeature(
        command={"name": name, "description": f"{name} command"},
        handler=handler or MagicMock(),
    )


# -------------------------------------------------------------------
# route
# -------------------------------------------------------------------

class TestRoute:
    """Tests for InteractionRouter.route."""

    @pytest.mark.asyncio
    async def test_routes_command_and_component(self):
        ping = _command("ping")
        button = ComponentFeature(custom_id="btn1", handler=MagicMock())
        router = InteractionRouter()
        router.add_features([ping, button])
        session = FakeSession()

        cmd_event = Interaction(kind=InteractionKind.COMMAND, name="ping")
        await router.route(session, cmd_event)
        ping.handler.assert_called_once_with(session, cmd_event)
        button.handler.assert_not_called()

        btn_event = Interaction(kind=InteractionKind.MESSAGE_COMPONENT, custom_id="btn1")
        await router.route(session, btn_event)
        button.handler.assert_called_once_with(session, btn_event)
        assert ping.handler.call_count == 1

    @pytest.mark.asyncio
    async def test_unmatched_event_is_ignored(self):
        ping = _command("ping")
        router = InteractionRouter()
        router.add_feature(ping)

        result = await router.route(
            FakeSession(), Interaction(kind=InteractionKind.COMMAND, name="pong")
        )

        assert result is None
        ping.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_registered_feature_wins(self):
        first = _command("dup")
        second = _command("dup")
        router = InteractionRouter()
        router.add_feature(first)
        router.add_feature(second)

        for _ in range(3):
            await router.route(
                FakeSession(), Interaction(kind=InteractionKind.COMMAND, name="dup")
            )

        assert first.handler.call_count == 3
        second.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_kind_must_match(self):
        """A component whose custom id equals a command name is not a command."""
        component = ComponentFeature(custom_id="ping", handler=MagicMock())
        router = InteractionRouter()
        router.add_feature(component)

        await router.route(
            FakeSession(), Interaction(kind=InteractionKind.COMMAND, name="ping")
        )

        component.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_autocomplete_matches_on_command_name(self):
        command = _command("search")
        autocomplete = AutocompleteFeature(
            command={"name": "search", "description": "search"},
            handler=MagicMock(),
        )
        router = InteractionRouter()
        router.add_features([command, autocomplete])

        event = Interaction(kind=InteractionKind.AUTOCOMPLETE, name="search")
        await router.route(FakeSession(), event)

        autocomplete.handler.assert_called_once()
        command.handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_modal_matches_on_name(self):
        modal = ModalFeature(name="feedback_form", handler=MagicMock())
        router = InteractionRouter()
        router.add_feature(modal)

        event = Interaction(kind=InteractionKind.MODAL_SUBMIT, name="feedback_form")
        await router.route(FakeSession(), event)

        modal.handler.assert_called_once()

    @pytest.mark.asyncio
    async def test_async_handler_is_awaited(self):
        handler = AsyncMock(return_value="pong")
        router = InteractionRouter()
        router.add_feature(_command("ping", handler))

        result = await router.route(
            FakeSession(), Interaction(kind=InteractionKind.COMMAND, name="ping")
        )

        handler.assert_awaited_once()
        assert result == "pong"

    @pytest.mark.asyncio
    async def test_handler_errors_propagate(self):
        handler = MagicMock(side_effect=ValueError("boom"))
        router = InteractionRouter()
        router.add_feature(_command("ping", handler))

        with pytest.raises(ValueError, match="boom"):
            await router.route(
                FakeSession(), Interaction(kind=InteractionKind.COMMAND, name="ping")
            )

    @pytest.mark.asyncio
    async def test_routes_plain_event_objects(self):
        """Any object with kind/name/custom_id can be routed."""
        ping = _command("ping")
        router = InteractionRouter()
        router.add_feature(ping)
        event = SimpleNamespace(kind=InteractionKind.COMMAND, name="ping", custom_id="")

        await router.route(FakeSession(), event)

        ping.handler.assert_called_once()


# -------------------------------------------------------------------
# listen
# -------------------------------------------------------------------

class TestListen:
    """Tests for InteractionRouter.listen."""

    @pytest.mark.asyncio
    async def test_listen_subscribes_route_and_freezes(self):
        ping = _command("ping")
        router = InteractionRouter()
        router.add_feature(ping)
        session = FakeSession()

        router.listen(session)

        assert router.registry.frozen is True
        assert len(session.callbacks) == 1
        event = Interaction(kind=InteractionKind.COMMAND, name="ping")
        await session.callbacks[0](session, event)
        ping.handler.assert_called_once_with(session, event)

        with pytest.raises(RegistryFrozenError):
            router.add_feature(_command("late"))

    @pytest.mark.asyncio
    async def test_listen_twice_subscribes_once(self):
        ping = _command("ping")
        router = InteractionRouter()
        router.add_feature(ping)
        session = FakeSession()

        router.listen(session)
        router.listen(session)

        assert len(session.callbacks) == 1
        for callback in session.callbacks:
            await callback(session, Interaction(kind=InteractionKind.COMMAND, name="ping"))
        ping.handler.assert_called_once()

    def test_listen_on_second_session_subscribes_it(self):
        router = InteractionRouter()
        first, second = FakeSession(), FakeSession(application_id="222")

        router.listen(first)
        router.listen(second)

        assert len(first.callbacks) == 1
        assert len(second.callbacks) == 1


# -------------------------------------------------------------------
# publish_commands
# -------------------------------------------------------------------

class TestPublishCommands:
    """Tests for InteractionRouter.publish_commands."""

    @pytest.mark.asyncio
    async def test_sends_command_specs_in_order(self):
        ping = _command("ping")
        search_ac = AutocompleteFeature(
            command={"name": "search", "description": "search"}, handler=MagicMock()
        )
        echo = _command("echo")
        router = InteractionRouter()
        router.add_features([
            ping,
            ComponentFeature(custom_id="btn1", handler=MagicMock()),
            search_ac,
            ModalFeature(name="form", handler=MagicMock()),
            echo,
        ])
        session = FakeSession(created_ids=("101", "102", "103"))

        await router.publish_commands(session, "999")

        session.bulk_overwrite_commands.assert_awaited_once_with(
            "111", "999", [ping.command, search_ac.command, echo.command]
        )
        assert router.registered_command_ids("111") == ("101", "102", "103")

    @pytest.mark.asyncio
    async def test_global_scope_is_empty_string(self):
        router = InteractionRouter()
        router.add_feature(_command("ping"))
        session = FakeSession(created_ids=("101",))

        await router.publish_commands(session)

        args = session.bulk_overwrite_commands.await_args.args
        assert args[1] == ""

    @pytest.mark.asyncio
    async def test_second_publish_raises_without_remote_call(self):
        router = InteractionRouter()
        router.add_feature(_command("ping"))
        session = FakeSession()

        await router.publish_commands(session)
        with pytest.raises(AlreadyRegisteredError) as exc_info:
            await router.publish_commands(session)

        assert exc_info.value.application_id == "111"
        assert session.bulk_overwrite_commands.await_count == 1

    @pytest.mark.asyncio
    async def test_other_application_may_publish(self):
        router = InteractionRouter()
        router.add_feature(_command("ping"))

        await router.publish_commands(FakeSession(application_id="111"))
        await router.publish_commands(FakeSession(application_id="222", created_ids=("201",)))

        assert router.registered_command_ids("111") == ("101", "102")
        assert router.registered_command_ids("222") == ("201",)

    @pytest.mark.asyncio
    async def test_remote_failure_wraps_error_and_allows_retry(self):
        router = InteractionRouter()
        router.add_feature(_command("ping"))
        session = FakeSession()
        cause = ConnectionError("gateway down")
        session.bulk_overwrite_commands.side_effect = cause

        with pytest.raises(RemoteRegistrationError) as exc_info:
            await router.publish_commands(session)

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.is_retryable is True
        assert router.registered_command_ids("111") == ()

        session.bulk_overwrite_commands.side_effect = None
        await router.publish_commands(session)
        assert router.registered_command_ids("111") == ("101", "102")

    @pytest.mark.asyncio
    async def test_concurrent_publish_overwrites_once(self):
        router = InteractionRouter()
        router.add_feature(_command("ping"))
        session = FakeSession()

        async def slow_overwrite(*args):
            await asyncio.sleep(0.01)
            return [SimpleNamespace(id="101")]

        session.bulk_overwrite_commands.side_effect = slow_overwrite

        results = await asyncio.gather(
            router.publish_commands(session),
            router.publish_commands(session),
            return_exceptions=True,
        )

        assert session.bulk_overwrite_commands.await_count == 1
        assert sum(isinstance(r, AlreadyRegisteredError) for r in results) == 1


# -------------------------------------------------------------------
# unpublish_commands
# -------------------------------------------------------------------

class TestUnpublishCommands:
    """Tests for InteractionRouter.unpublish_commands."""

    async def _published_router(self, session):
        router = InteractionRouter()
        router.add_feature(_command("ping"))
        router.add_feature(_command("echo"))
        await router.publish_commands(session, "999")
        return router

    @pytest.mark.asyncio
    async def test_deletes_each_id_in_order(self):
        session = FakeSession()
        router = await self._published_router(session)

        await router.unpublish_commands(session, "999")

        assert [c.args for c in session.delete_command.await_args_list] == [
            ("111", "999", "101"),
            ("111", "999", "102"),
        ]
        assert router.registered_command_ids("111") == ()

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        session = FakeSession(created_ids=("101", "102", "103"))
        router = await self._published_router(session)
        cause = RuntimeError("404 Unknown application command")
        session.delete_command.side_effect = [None, cause, None]

        with pytest.raises(RemoteDeletionError) as exc_info:
            await router.unpublish_commands(session, "999")

        assert exc_info.value.command_id == "102"
        assert exc_info.value.__cause__ is cause
        assert session.delete_command.await_count == 2
        assert router.registered_command_ids("111") == ("102", "103")

    @pytest.mark.asyncio
    async def test_retry_resumes_with_outstanding_ids(self):
        session = FakeSession()
        router = await self._published_router(session)
        session.delete_command.side_effect = [None, RuntimeError("500")]

        with pytest.raises(RemoteDeletionError):
            await router.unpublish_commands(session, "999")

        session.delete_command.reset_mock(side_effect=True)
        await router.unpublish_commands(session, "999")

        session.delete_command.assert_awaited_once_with("111", "999", "102")

    @pytest.mark.asyncio
    async def test_nothing_recorded_is_noop(self):
        session = FakeSession()
        router = InteractionRouter()

        await router.unpublish_commands(session)

        session.delete_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_after_unpublish_still_rejected(self):
        session = FakeSession()
        router = await self._published_router(session)
        await router.unpublish_commands(session, "999")

        with pytest.raises(AlreadyRegisteredError):
            await router.publish_commands(session, "999")


# -------------------------------------------------------------------
# event loop independence
# -------------------------------------------------------------------

def _slow_session(application_id):
    session = FakeSession(application_id=application_id)

    async def slow_overwrite(*args):
        await asyncio.sleep(0.01)
        return [SimpleNamespace(id=f"{application_id}-1")]

    session.bulk_overwrite_commands.side_effect = slow_overwrite
    return session


def test_router_built_outside_loop_serves_several_loops():
    """Overlapping publishes work under separate asyncio.run calls."""
    router = InteractionRouter()
    router.add_feature(_command("ping"))

    async def publish_pair(first, second):
        return await asyncio.gather(
            router.publish_commands(first),
            router.publish_commands(second),
            return_exceptions=True,
        )

    first_run = asyncio.run(publish_pair(_slow_session("111"), _slow_session("222")))
    assert first_run == [None, None]

    same_app = _slow_session("333")
    second_run = asyncio.run(publish_pair(same_app, same_app))
    assert second_run[0] is None
    assert isinstance(second_run[1], AlreadyRegisteredError)
    assert same_app.bulk_overwrite_commands.await_count == 1
    assert router.registered_command_ids("333") == ("333-1",)
