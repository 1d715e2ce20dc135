"""Interaction routing for chat-platform bots.

Register features (slash commands, message components, autocomplete
and modal handlers), publish the commands to the platform once, and
route each inbound interaction to the first matching handler.
"""

from .exceptions import (
    AlreadyRegisteredError,
    ErrorCategory,
    PlatformAPIError,
    RegistryFrozenError,
    RemoteDeletionError,
    RemoteRegistrationError,
    SwitchboardError,
)
from .features import (
    AutocompleteFeature,
    CommandFeature,
    ComponentFeature,
    Feature,
    ModalFeature,
)
from .interactions import Interaction, InteractionKind
from .registry import FeatureRegistry
from .router import InteractionRouter
from .session import InteractionEvent, PlatformSession

__all__ = [
    "AlreadyRegisteredError",
    "AutocompleteFeature",
    "CommandFeature",
    "ComponentFeature",
    "ErrorCategory",
    "Feature",
    "FeatureRegistry",
    "Interaction",
    "InteractionEvent",
    "InteractionKind",
    "InteractionRouter",
    "ModalFeature",
    "PlatformAPIError",
    "PlatformSession",
    "RegistryFrozenError",
    "RemoteDeletionError",
    "RemoteRegistrationError",
    "SwitchboardError",
]
