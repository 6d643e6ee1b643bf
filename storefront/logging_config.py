"""
Logging setup and the structured log sink
"""
import json
import logging
import sys
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("storefront")


class ContextFormatter(logging.Formatter):
    """Formatter that renders an optional ``context`` dict after the message"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if context:
            message = f"{message} | context={json.dumps(context, default=str, sort_keys=True)}"
        return message


def configure_logging(level: str = "INFO") -> None:
    """Configure the ``storefront`` logger tree once"""
    root = logging.getLogger("storefront")
    root.setLevel(level.upper())

    if not any(getattr(h, "_storefront", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(ContextFormatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        handler._storefront = True
        root.addHandler(handler)


def add_log(
    level: Union[int, str],
    message: str,
    context: Optional[Dict[str, Any]] = None,
    name: str = "storefront",
) -> None:
    """
    Fire-and-forget log sink

    Args:
        level: Logging level, numeric or name ("info", "ERROR", ...)
        message: Log message
        context: Structured data rendered next to the message
        name: Logger name
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.getLogger(name).log(level, message, extra={"context": context or {}})
