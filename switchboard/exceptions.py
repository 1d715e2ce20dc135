"""Exception hierarchy for switchboard.

Every error raised by the registry, the router and the REST adapter
derives from SwitchboardError, so callers can catch broadly or per
condition. Remote failures keep the original transport error as
``__cause__``.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for retry decisions."""
    TRANSIENT = "transient"          # Worth retrying (timeout, 5xx, rate limit)
    PERMANENT = "permanent"          # Not worth retrying (bad input, 4xx)
    INFRASTRUCTURE = "infrastructure"  # Missing token, env issues


class SwitchboardError(Exception):
    """Base exception for all switchboard errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification for retry decisions.
        module: Originating module name (e.g. "router").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether this error is worth retrying."""
        return self.category == ErrorCategory.TRANSIENT

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Registry exceptions
# ---------------------------------------------------------------------------

class RegistryFrozenError(SwitchboardError):
    """A feature was added after the registry started serving events."""

    def __init__(
        self,
        message: str = "Feature registry is frozen",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "registry", **context
        )


# ---------------------------------------------------------------------------
# Router exceptions
# ---------------------------------------------------------------------------

class AlreadyRegisteredError(SwitchboardError):
    """Commands were already published once for this application.

    Attributes:
        application_id: The application whose commands are recorded.
    """

    def __init__(
        self,
        message: str = "This application already has registered commands once",
        *,
        application_id: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.application_id = application_id
        super().__init__(
            message,
            category=category,
            module=module or "router",
            application_id=application_id,
            **context,
        )


class RemoteRegistrationError(SwitchboardError):
    """The bulk overwrite call to the platform failed.

    Nothing is recorded for the application, so publishing may be
    attempted again.
    """

    def __init__(
        self,
        message: str = "Bulk command overwrite failed",
        *,
        application_id: Optional[str] = None,
        guild_id: str = "",
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.application_id = application_id
        self.guild_id = guild_id
        super().__init__(
            message,
            category=category,
            module=module or "router",
            application_id=application_id,
            guild_id=guild_id or "global",
            **context,
        )


class RemoteDeletionError(SwitchboardError):
    """Deleting a single registered command failed.

    Attributes:
        command_id: The id whose delete failed. Commands after it in
            the recorded order were not attempted.
    """

    def __init__(
        self,
        message: str = "Command delete failed",
        *,
        application_id: Optional[str] = None,
        guild_id: str = "",
        command_id: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.application_id = application_id
        self.guild_id = guild_id
        self.command_id = command_id
        super().__init__(
            message,
            category=category,
            module=module or "router",
            application_id=application_id,
            guild_id=guild_id or "global",
            command_id=command_id,
            **context,
        )


# ---------------------------------------------------------------------------
# REST adapter exceptions
# ---------------------------------------------------------------------------

class PlatformAPIError(SwitchboardError):
    """Non-success response from the platform REST API.

    429 and 5xx responses are TRANSIENT, everything else PERMANENT.

    Attributes:
        status: HTTP status code.
        body: Response body, truncated.
    """

    def __init__(
        self,
        message: str = "",
        *,
        status: int = 0,
        body: str = "",
        category: Optional[ErrorCategory] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.status = status
        self.body = body[:500]
        if category is None:
            category = (
                ErrorCategory.TRANSIENT
                if status == 429 or status >= 500
                else ErrorCategory.PERMANENT
            )
        super().__init__(
            message or f"Platform API returned HTTP {status}",
            category=category,
            module=module or "rest",
            status=status,
            **context,
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(SwitchboardError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental
    and won't resolve by retrying.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )
