"""
Structured logging setup using structlog.
"""
import logging
import re
import sys
from typing import Any, Dict, Optional

import structlog

REDACTED = "[[REDACTED]]"

# Keys whose values never reach the log output.
SENSITIVE_FIELDS = ("password", "token", "secret", "api_key", "authorization", "from_email", "email_address")

SENSITIVE_PATTERNS = (
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # e-mail
    re.compile(r"\b(?:sk|pk|xox[abp])[-_][A-Za-z0-9_-]{12,}\b"),  # API tokens
)


def setup_logging(log_level: str = "INFO") -> None:
    """Setup structured logging with structlog."""
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

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
            redact_sensitive_data,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_sensitive_data(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Redact secrets and e-mail addresses from log entries."""
    for field in SENSITIVE_FIELDS:
        if field in event_dict:
            event_dict[field] = REDACTED

    for key, value in event_dict.items():
        if isinstance(value, str):
            for pattern in SENSITIVE_PATTERNS:
                value = pattern.sub(REDACTED, value)
            event_dict[key] = value

    return event_dict


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)


def log_stage(stage: str, **kwargs: Any) -> None:
    """Log a digest run stage with context."""
    get_logger().info(f"Digest stage: {stage}", stage=stage, **kwargs)
