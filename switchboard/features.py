"""Feature descriptors: one routable interaction pattern plus its handler.

Each interaction kind has its own frozen dataclass so only the field
that kind matches on exists. All features expose ``kind``,
``discriminator`` and ``command_spec`` for the registry and router.

Key classes:
    CommandFeature: Slash command, published and matched by name.
    AutocompleteFeature: Autocomplete for a command, published and
        matched by the command's name.
    ComponentFeature: Message component (button, select), matched by
        custom id.
    ModalFeature: Modal submission, matched by the modal's name.
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Mapping, Optional, Union

from .interactions import InteractionKind
from .session import Handler


@dataclass(frozen=True, eq=False)
class CommandFeature:
    """A slash command.

    Attributes:
        command: Full command definition (name, description, options,
            ...) sent to the platform unmodified.
        handler: Called with (session, interaction).
    """

    kind: ClassVar[InteractionKind] = InteractionKind.COMMAND

    command: Mapping[str, Any]
    handler: Handler

    @property
    def discriminator(self) -> str:
        return self.command["name"]

    @property
    def command_spec(self) -> Optional[Mapping[str, Any]]:
        return self.command


@dataclass(frozen=True, eq=False)
class AutocompleteFeature(CommandFeature):
    """Autocomplete suggestions for a command's options."""

    kind: ClassVar[InteractionKind] = InteractionKind.AUTOCOMPLETE


@dataclass(frozen=True, eq=False)
class ComponentFeature:
    """A message component such as a button or select menu."""

    kind: ClassVar[InteractionKind] = InteractionKind.MESSAGE_COMPONENT

    custom_id: str
    handler: Handler

    @property
    def discriminator(self) -> str:
        return self.custom_id

    @property
    def command_spec(self) -> Optional[Mapping[str, Any]]:
        return None


@dataclass(frozen=True, eq=False)
class ModalFeature:
    """A modal submission."""

    kind: ClassVar[InteractionKind] = InteractionKind.MODAL_SUBMIT

    name: str
    handler: Handler

    @property
    def discriminator(self) -> str:
        return self.name

    @property
    def command_spec(self) -> Optional[Mapping[str, Any]]:
        return None


Feature = Union[CommandFeature, AutocompleteFeature, ComponentFeature, ModalFeature]
