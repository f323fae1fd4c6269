"""Structured logging configuration using structlog."""

import logging
import re
import sys

import structlog

# Razorpay API key ids (rzp_test_..., rzp_live_...) and Authorization headers
# Format: Authorization: Basic <base64(key_id:key_secret)>
_SECRET_KEY_PATTERN = re.compile(r"\b(rzp_(?:test|live)_[A-Za-z0-9]{8,}|Basic [A-Za-z0-9+/=]{16,})")

# Event keys whose values are never written in clear
_REDACTED_KEYS = frozenset(
    {"signature", "key_secret", "webhook_secret", "payment_key_secret", "payment_webhook_secret"}
)


class SecretRedactingFilter(logging.Filter):
    """Filter that redacts gateway secrets from stdlib log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact secret keys from log message."""
        if record.msg and isinstance(record.msg, str):
            record.msg = _SECRET_KEY_PATTERN.sub("<SECRET_REDACTED>", record.msg)
        if record.args:
            record.args = tuple(
                _SECRET_KEY_PATTERN.sub("<SECRET_REDACTED>", arg)
                if isinstance(arg, str)
                else arg
                for arg in record.args
            )
        return True


def _redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor to redact secrets and signatures from events."""
    for key, value in list(event_dict.items()):
        if key in _REDACTED_KEYS and value:
            event_dict[key] = "<REDACTED>"
        elif isinstance(value, str):
            event_dict[key] = _SECRET_KEY_PATTERN.sub("<SECRET_REDACTED>", value)
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    # Create secret-redacting filter
    secret_filter = SecretRedactingFilter()

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Clear existing handlers and add new one with filter
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, log_level.upper()))
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler.addFilter(secret_filter)
    root_logger.addHandler(handler)

    # Also apply filter to the gateway HTTP client and DB driver loggers
    for logger_name in ("razorpay", "urllib3", "sqlalchemy.engine", "asyncpg"):
        logging.getLogger(logger_name).addFilter(secret_filter)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
