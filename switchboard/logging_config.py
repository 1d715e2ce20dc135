"""Logging configuration for switchboard.

Provides subsystem-level log file routing, secret sanitization,
and structlog + stdlib integration.

Subsystem hierarchy (stdlib dotted names, structlog wraps them):
    root                     → ConsoleHandler (terminal)
      └─ switchboard         → RotatingFileHandler → switchboard.log (combined)
           ├─ switchboard.registry → RFH → registry.log
           ├─ switchboard.router   → RFH → router.log
           ├─ switchboard.rest     → RFH → rest.log
           └─ switchboard.config   → RFH → config.log

File handlers are only attached when a log directory is configured.
"""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

# Subsystem names, each with its own RotatingFileHandler
SUBSYSTEMS = ("registry", "router", "rest", "config")

# stdlib logger name prefix for hierarchy-based propagation
LOGGER_PREFIX = "switchboard"

# ---------------------------------------------------------------------------
# Secret sanitization
# ---------------------------------------------------------------------------

_SECRET_PATTERNS = [
    # Authorization header values
    re.compile(r"(?:Bot|Bearer)\s+[a-zA-Z0-9_.\-]{20,}"),
    # Bare bot tokens: <id base64>.<timestamp>.<hmac>
    re.compile(r"[a-zA-Z0-9_-]{23,28}\.[a-zA-Z0-9_-]{6,7}\.[a-zA-Z0-9_-]{27,}"),
]

# Interaction/webhook tokens in REST paths
_WEBHOOK_TOKEN_PATTERN = re.compile(r"(/(?:webhooks|interactions)/\d+/)[a-zA-Z0-9_.\-]{30,}")

_REDACTED = "***REDACTED***"

# Set on the console handler this module installs so re-runs replace it
_CONSOLE_MARKER = "_switchboard_console"


def _scrub_value(value: str) -> str:
    """Scrub tokens from a single string value."""
    for pattern in _SECRET_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    value = _WEBHOOK_TOKEN_PATTERN.sub(lambda m: m.group(1) + _REDACTED, value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that scrubs bot and interaction tokens.

    Walks all string values in the event dict, one level into lists,
    tuples and dicts, and replaces matches with a redacted
    placeholder.
    """
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _scrub_value(value)
        elif isinstance(value, (list, tuple)):
            event_dict[key] = type(value)(
                _scrub_value(v) if isinstance(v, str) else v
                for v in value
            )
        elif isinstance(value, dict):
            event_dict[key] = {
                k: _scrub_value(v) if isinstance(v, str) else v
                for k, v in value.items()
            }
    return event_dict


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(config=None) -> None:
    """Configure structured logging with subsystem file handlers.

    Opt-in helper for hosts without their own logging setup. Handlers
    the host already attached to the root logger are left alone; the
    console handler is only added when the root logger has none.

    Sets up:
    1. Root logger: ConsoleHandler (skipped if the host configured root)
    2. "switchboard" logger: RotatingFileHandler → switchboard.log
    3. "switchboard.<subsystem>" loggers: individual RotatingFileHandlers

    Args:
        config: Optional Config instance. First call (before config loads)
                uses console-only defaults with cache_logger_on_first_use=False.
                Second call (after config loads) uses real config and sets
                cache_logger_on_first_use=True.
    """
    log_dir: Optional[Path]
    if config is not None:
        log_dir = config.log_dir
        root_level_name = config.logging_level.upper()
        subsystem_levels = config.logging_subsystem_levels
        max_bytes = config.logging_max_file_size_mb * 1024 * 1024
        backup_count = config.logging_backup_count
        cache_loggers = True
    else:
        log_dir = None
        root_level_name = "INFO"
        subsystem_levels = {}
        max_bytes = 10 * 1024 * 1024  # 10 MB
        backup_count = 5
        cache_loggers = False

    root_level = getattr(logging, root_level_name, logging.INFO)

    file_handlers_ok = False
    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handlers_ok = True
        except OSError as exc:
            print(
                f"WARNING: Cannot create log directory {log_dir}: {exc}. "
                "Falling back to console-only logging.",
                file=sys.stderr,
            )

    file_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
    )

    # 1. Root logger: console, only when the host has not configured one
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _CONSOLE_MARKER, False):
            root_logger.removeHandler(handler)

    if not root_logger.handlers:
        root_logger.setLevel(logging.DEBUG)  # Handlers filter by level
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(root_level)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
        )
        setattr(console_handler, _CONSOLE_MARKER, True)
        root_logger.addHandler(console_handler)

    # 2. "switchboard" parent logger: combined log file
    sb_logger = logging.getLogger(LOGGER_PREFIX)
    sb_logger.setLevel(logging.DEBUG)
    sb_logger.handlers.clear()
    sb_logger.propagate = True

    if file_handlers_ok:
        combined_handler = logging.handlers.RotatingFileHandler(
            log_dir / "switchboard.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        combined_handler.setLevel(root_level)
        combined_handler.setFormatter(file_formatter)
        sb_logger.addHandler(combined_handler)

    # 3. Per-subsystem loggers
    for subsystem in SUBSYSTEMS:
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        sub_level_name = subsystem_levels.get(subsystem, "").upper()
        sub_level = getattr(logging, sub_level_name, root_level) if sub_level_name else root_level
        sub_logger.setLevel(sub_level)
        sub_logger.handlers.clear()
        sub_logger.propagate = True

        if file_handlers_ok:
            sub_handler = logging.handlers.RotatingFileHandler(
                log_dir / f"{subsystem}.log",
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            sub_handler.setLevel(sub_level)
            sub_handler.setFormatter(file_formatter)
            sub_logger.addHandler(sub_handler)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            sanitize_secrets,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )
