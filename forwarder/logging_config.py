"""
Logging configuration for the cascading call forwarder.

Features:
- Structured JSON logging for production (log aggregators like Datadog, CloudWatch, ELK)
- Colored console output for development
- Call context tracking (call_sid, step)

Usage:
    from .logging_config import get_logger, log_dial_attempt

    logger = get_logger("twilio")
    logger.info("Message", extra={"call_sid": call_sid})

    log_dial_attempt(call_sid, attempt=0, number="+15551234567")
"""

import logging
import sys
import json
import os
from datetime import datetime, timezone
from typing import Optional


class JSONFormatter(logging.Formatter):
    """Structured JSON logging for production (easy to parse by log aggregators)."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add extra fields if present (call_sid, step, etc.)
        if getattr(record, "call_sid", None):
            log_data["call_sid"] = record.call_sid
        if getattr(record, "step", None):
            log_data["step"] = record.step
        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable colored console output for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)

        context_parts = []
        call_sid = getattr(record, "call_sid", None)
        step = getattr(record, "step", None)

        if call_sid:
            short_sid = call_sid[:12] + "..." if len(call_sid) > 12 else call_sid
            context_parts.append(f"Call:{short_sid}")
        if step:
            context_parts.append(f"Step:{step}")

        context = f" [{', '.join(context_parts)}]" if context_parts else ""
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]

        message = f"{color}[{timestamp}] {record.levelname:8}{self.RESET}{context} {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class CallContextFilter(logging.Filter):
    """Filter that adds default values for call context fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "call_sid"):
            record.call_sid = ""
        if not hasattr(record, "step"):
            record.step = ""
        if not hasattr(record, "extra_data"):
            record.extra_data = None
        return True


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)
        log_file: Optional file path to write logs

    Returns:
        Configured root logger for the app
    """
    logger = logging.getLogger("forwarder")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.handlers.clear()

    # Filters on a logger do not apply to records from child loggers, so the
    # context filter goes on every handler instead.
    context_filter = CallContextFilter()

    formatter = JSONFormatter() if json_format else ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG)
    console_handler.addFilter(context_filter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())  # Always JSON for files
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


_LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
_LOG_FORMAT_JSON = os.getenv("LOG_FORMAT", "console").lower() == "json"
_LOG_FILE = os.getenv("LOG_FILE", None)

_root_logger = setup_logging(
    log_level=_LOG_LEVEL,
    json_format=_LOG_FORMAT_JSON,
    log_file=_LOG_FILE
)


def get_logger(name: str = "") -> logging.Logger:
    """
    Get a child logger with the given name.

    Args:
        name: Logger name suffix (e.g., "twilio", "cascade", "notifier")
    """
    if name:
        return logging.getLogger(f"forwarder.{name}")
    return logging.getLogger("forwarder")


# =============================================================================
# Convenience functions for structured logging
# =============================================================================

def log_call_start(call_sid: str, from_number: str, to_number: str):
    """Log an inbound transfer from the voice agent."""
    logger = get_logger("call")
    logger.info(
        f"📞 INCOMING TRANSFER from {from_number} to {to_number}",
        extra={"call_sid": call_sid, "step": "start"}
    )


def log_dial_attempt(call_sid: str, attempt: int, number: str, timeout: int = 0):
    """Log a dial directive being issued for one candidate."""
    logger = get_logger("cascade")
    logger.info(
        f"🔄 Dialing attempt {attempt + 1}: {number}" + (f" (timeout {timeout}s)" if timeout else ""),
        extra={"call_sid": call_sid, "step": f"dialing:{attempt}"}
    )


def log_state_change(call_sid: str, from_step: str, to_step: str, **extra_data):
    """
    Log state machine transitions.

    Args:
        call_sid: Twilio call SID
        from_step: Previous state
        to_step: New state
        **extra_data: Additional context data
    """
    logger = get_logger("state")
    logger.debug(
        f"State: {from_step} → {to_step}",
        extra={"call_sid": call_sid, "step": to_step, "extra_data": extra_data}
    )


def log_call_end(call_sid: str, connected: bool = False, reason: str = ""):
    """Log the end of the cascade."""
    logger = get_logger("call")
    status = "✅ CONNECTED" if connected else "❌ UNAVAILABLE"
    msg = f"{status}" + (f" - {reason}" if reason else "")
    logger.info(msg, extra={"call_sid": call_sid, "step": "end"})


def log_error(call_sid: str, error: Exception, step: str = "", context: str = ""):
    """
    Log errors with full context.

    Args:
        call_sid: Twilio call SID
        error: The exception
        step: Current handler or state
        context: Additional context about what was happening
    """
    logger = get_logger("error")
    msg = f"❌ {context}: {type(error).__name__}: {error}" if context else f"❌ {type(error).__name__}: {error}"
    logger.error(msg, extra={"call_sid": call_sid, "step": step}, exc_info=error)


def log_external_service(service: str, operation: str, success: bool = True, **extra_data):
    """Log external service calls (notification webhook, SendGrid, etc.)."""
    logger = get_logger("external")
    status = "✓" if success else "✗"
    level = logging.INFO if success else logging.WARNING
    logger.log(
        level,
        f"🌐 {status} {service}: {operation}",
        extra={"call_sid": extra_data.pop("call_sid", ""), "extra_data": extra_data}
    )
