from __future__ import annotations
import logging
import os

from opentelemetry import trace

# Simple ANSI color codes; auto-disable on non-TTY/CI
USE_COLOR = os.getenv("LOG_COLOR", "1") == "1" and os.getenv("NO_COLOR") is None

COLORS = {
    "RESET": "\033[0m",
    "GRAY": "\033[90m",
    "RED": "\033[91m",
    "YELLOW": "\033[93m",
    "CYAN": "\033[96m",
    "MAGENTA": "\033[95m",
}

LEVEL_COLOR = {
    logging.DEBUG: "GRAY",
    logging.INFO: "CYAN",
    logging.WARNING: "YELLOW",
    logging.ERROR: "RED",
    logging.CRITICAL: "MAGENTA",
}

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | trace=%(trace_id)s | %(message)s"


class TraceIdFilter(logging.Filter):
    """Stamp each record with the trace id of the span active when it was logged."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        record.trace_id = format(span_context.trace_id, "032x") if span_context.is_valid else "-"
        return True


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        msg = super().format(record)
        if not USE_COLOR:
            return msg
        color = COLORS.get(LEVEL_COLOR.get(record.levelno, "RESET"), "")
        reset = COLORS["RESET"]
        return f"{color}{msg}{reset}"


def install_color_handler(logger: logging.Logger, level: int | str = logging.INFO) -> None:
    if any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        return
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(TraceIdFilter())
    handler.setFormatter(ColorFormatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
