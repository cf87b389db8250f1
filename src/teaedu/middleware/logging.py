"""Structured logging configuration with structlog.

Claim logs carry wallet addresses and tx hashes on purpose (reconciliation
needs them); secrets such as bearer tokens and the distributor key never
reach the renderer.
"""

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog

from teaedu.config import Settings

REDACTED = "[redacted]"
_SECRET_KEYS = frozenset({"authorization", "access_token", "private_key", "distributor_private_key", "secret", "password"})


def redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:  # noqa: ANN401
    """structlog processor: mask values whose key names a credential."""
    for key in event_dict.keys() & _SECRET_KEYS:
        event_dict[key] = REDACTED
    return event_dict


def _static_fields(fields: dict[str, Any]) -> structlog.types.Processor:
    def add(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:  # noqa: ANN401
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add


def setup_logging(settings: Settings) -> None:
    """Configure structlog. JSON when deployed, console renderer for local runs and tests."""
    json_output = settings.log_format == "json"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _static_fields({"environment": settings.environment, "chain_id": settings.chain_id}),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level)
    # web3 and its HTTP provider log every RPC round-trip at DEBUG
    for noisy in ("web3", "urllib3", "aiohttp.access"):
        logging.getLogger(noisy).setLevel(max(logging.INFO, level))
