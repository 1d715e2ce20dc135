"""Inbound interaction events.

Defines the interaction kinds the router understands and a pydantic
model for the event value itself. Host applications either build
Interaction objects from raw platform payloads via
``Interaction.from_payload`` or hand the router their own event
objects exposing ``kind``, ``name`` and ``custom_id``.
"""

from enum import IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class InteractionKind(IntEnum):
    """Interaction type, valued as the platform numbers them.

    PING is sent by the platform when verifying an HTTP endpoint and
    is never routed to a feature.
    """
    PING = 1
    COMMAND = 2
    MESSAGE_COMPONENT = 3
    AUTOCOMPLETE = 4
    MODAL_SUBMIT = 5


# Kinds whose features carry a command definition that gets published
COMMAND_KINDS = frozenset({InteractionKind.COMMAND, InteractionKind.AUTOCOMPLETE})


class Interaction(BaseModel):
    """A single inbound interaction.

    ``custom_id`` is set for MESSAGE_COMPONENT events. ``name`` is set
    for every other kind: the invoked command's name, or the modal's
    custom id for MODAL_SUBMIT.
    """

    model_config = ConfigDict(frozen=True)

    kind: InteractionKind
    name: str = ""
    custom_id: str = ""
    id: Optional[str] = None
    application_id: Optional[str] = None
    guild_id: Optional[str] = None
    token: Optional[str] = Field(default=None, repr=False)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def discriminator(self) -> str:
        """The key features are matched against for this event's kind."""
        if self.kind == InteractionKind.MESSAGE_COMPONENT:
            return self.custom_id
        return self.name

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Interaction":
        """Build an Interaction from a raw platform interaction payload.

        Raises:
            pydantic.ValidationError: If ``type`` is missing or is not a
                known interaction kind.
        """
        data = payload.get("data") or {}
        fields: dict[str, Any] = {
            "kind": payload.get("type"),
            "id": payload.get("id"),
            "application_id": payload.get("application_id"),
            "guild_id": payload.get("guild_id"),
            "token": payload.get("token"),
            "data": data,
        }
        kind = payload.get("type")
        if kind == InteractionKind.MESSAGE_COMPONENT:
            fields["custom_id"] = data.get("custom_id", "")
        elif kind == InteractionKind.MODAL_SUBMIT:
            fields["name"] = data.get("custom_id", "")
        else:
            fields["name"] = data.get("name", "")
        return cls.model_validate(fields)
