"""
Structured Logging Utilities

Context-carrying loggers for the task lifecycle and review paths, so every
line about a task names the task and the acting user.
"""

from __future__ import annotations

import logging
from typing import Any

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def _format_context(context: dict[str, Any]) -> str:
    parts = [f"{key}={value}" for key, value in context.items() if value is not None]
    return " | ".join(parts)


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that prefixes messages with key=value context.

    Usage:
        logger = get_structured_logger(__name__, task_id=42, actor_id=7)
        logger.info("Task accepted")
        # -> "[task_id=42 | actor_id=7] Task accepted"
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, context)

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context_str = _format_context(self.extra)
        if context_str:
            msg = f"[{context_str}] {msg}"
        return msg, kwargs


def get_structured_logger(name: str, **context: Any) -> StructuredLoggerAdapter:
    """
    Get a structured logger with context.

    Args:
        name: Logger name (typically __name__)
        **context: Context fields (e.g., task_id=42, actor_id=7)

    Returns:
        StructuredLoggerAdapter instance
    """
    return StructuredLoggerAdapter(logging.getLogger(name), **context)


def configure_logging(level: str | int = logging.INFO) -> None:
    """Configure root logging for the API process."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=DEFAULT_FORMAT)
