"""structlog over stdlib logging, rendered as one JSON object per line.

``settings`` calls :func:`configure_structlog` once and assigns
:func:`logging_config` to ``LOGGING``.  Both share the same pre-chain so
records from plain ``logging`` loggers (Django, Celery) come out identical
to those from ``structlog.get_logger``.
"""

import re

import structlog

MASK = "***MASKED***"

SENSITIVE_KEYS = frozenset({"password", "token", "access", "refresh", "card_number"})

SENSITIVE_PATTERN = re.compile(
    r"(\b(?:\d[ -]?){12,18}\d\b)"  # card numbers
    r"|(password|passwd|secret|token|authorization)"
    r"""([=:]\s*["']?)([^\s,}"']+)""",
    re.IGNORECASE,
)


def mask_sensitive_data(_, __, event_dict):
    """Hide card numbers, passwords and tokens before rendering."""
    for key, value in list(event_dict.items()):
        if key in SENSITIVE_KEYS and value:
            event_dict[key] = MASK
        elif isinstance(value, str):
            event_dict[key] = SENSITIVE_PATTERN.sub(MASK, value)
    return event_dict


SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    mask_sensitive_data,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def logging_config(level: str = "INFO") -> dict:
    console = {"handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
                "foreign_pre_chain": SHARED_PROCESSORS,
            },
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "json"},
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": {
            "django": {**console, "level": level},
            # runserver access lines duplicate request_finished
            "django.server": {**console, "level": "WARNING"},
        },
    }
