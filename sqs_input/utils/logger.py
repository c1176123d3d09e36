"""Structured logging configuration."""
import logging
import structlog
from typing import Any, Dict, Optional


def human_readable_renderer(logger, method_name, event_dict):
    """Render log messages in a human-readable format."""
    timestamp = event_dict.pop("timestamp", "")
    level = event_dict.pop("level", "info").upper()
    event = event_dict.pop("event", "")

    level_colors = {
        "DEBUG": "\033[90m",    # Gray
        "INFO": "\033[36m",     # Cyan
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",    # Red
    }
    reset_color = "\033[0m"
    colored_level = f"{level_colors.get(level, '')}{level:8}{reset_color}"

    message_parts = []

    # Just the time, not full ISO
    if timestamp:
        time_part = timestamp.split("T")[1][:8] if "T" in timestamp else timestamp[:8]
        message_parts.append(f"[{time_part}]")

    message_parts.append(colored_level)

    if event:
        message_parts.append(f"| {event}")

    important_keys = ["queue", "exception", "code", "sleep_time", "message_id", "error", "count"]
    context_parts = []
    for key, value in event_dict.items():
        if key in important_keys or (key not in ["logger", "backtrace"] and value):
            if isinstance(value, (int, float)):
                context_parts.append(f"{key}={value}")
            elif isinstance(value, str) and len(value) < 100:
                context_parts.append(f"{key}={value}")

    if context_parts:
        message_parts.append(f"({', '.join(context_parts)})")

    rendered = " ".join(message_parts)
    if event_dict.get("backtrace"):
        rendered += "\n" + "".join(event_dict["backtrace"])
    return rendered


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Standard logging level name (DEBUG, INFO, ...)
        log_format: "json" for machine-readable output, "human" for terminals
    """
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    if log_format.lower() == "human":
        renderer = human_readable_renderer
    else:
        renderer = structlog.processors.JSONRenderer(default=str)

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
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def is_debug_enabled(name: str) -> bool:
    """Check whether DEBUG records would be emitted for the named logger."""
    return logging.getLogger(name).isEnabledFor(logging.DEBUG)


def print_banner(title: str, items: Optional[Dict[str, Any]] = None, log_format: str = "human", width: int = 80) -> None:
    """
    Print a formatted banner for important information.

    Args:
        title: Banner title
        items: Dictionary of key-value pairs to display
        log_format: Current log format; banners are only printed in human format
        width: Banner width
    """
    if log_format.lower() != "human":
        return

    border = "=" * width
    print(f"\n{border}")
    print(f"  {title}")
    print(border)

    if items:
        for key, value in items.items():
            formatted_key = key.replace("_", " ").title()
            print(f"{formatted_key:.<30} {value}")

    print(f"{border}\n")
