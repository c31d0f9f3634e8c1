"""Logging for the engine, the simulator and the CLI.

The facade opens an :func:`operation_scope` around every mutation, so each
record logged while it runs is stamped with the vault address, the
operation name and the calling account by :class:`OperationFilter`. Amounts
and other figures travel through ``extra=`` and end up as top-level JSON keys.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any, Iterator, Mapping

from .settings import Settings, get_settings

__all__ = [
    "DEFAULT_MODULE_LEVELS",
    "JSONFormatter",
    "OperationFilter",
    "configure_logging",
    "current_operation",
    "operation_scope",
]

LOG_FILE_NAME = "nexus_vault.log"
SCOPE_FIELDS = ("vault", "operation", "caller")

DEFAULT_MODULE_LEVELS: dict[str, int] = {
    "nexus_vault.engine": logging.INFO,
    "nexus_vault.simulation": logging.INFO,
    "nexus_vault.vault": logging.INFO,
    "nexus_vault.adapters": logging.WARNING,
}

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "scope"}

_OPERATION: ContextVar[dict[str, str | None] | None] = ContextVar(
    "nexus_vault_operation", default=None
)


@contextmanager
def operation_scope(vault: str, operation: str, caller: str | None = None) -> Iterator[None]:
    """Mark records logged inside the block as belonging to one vault call."""

    token = _OPERATION.set({"vault": vault, "operation": operation, "caller": caller})
    try:
        yield
    finally:
        _OPERATION.reset(token)


def current_operation() -> dict[str, str | None] | None:
    scope = _OPERATION.get()
    return dict(scope) if scope is not None else None


class OperationFilter(logging.Filter):
    """Stamp the active operation scope on each record.

    Fields passed explicitly through ``extra=`` win over the scope. ``scope``
    is a short ``[vault operation] `` prefix for plain-text output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        scope = _OPERATION.get() or {}
        for key in SCOPE_FIELDS:
            if not hasattr(record, key):
                setattr(record, key, scope.get(key))
        if getattr(record, "vault", None) and getattr(record, "operation", None):
            record.scope = f"[{record.vault} {record.operation}] "
        else:
            record.scope = ""
        return True


class JSONFormatter(logging.Formatter):
    """One JSON document per record: header, operation scope, then ``extra=`` fields."""

    def __init__(self, *, default_context: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._default_context = dict(default_context or {})

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(self._default_context)

        for key in SCOPE_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key in SCOPE_FIELDS:
                continue
            payload.setdefault(key, value)

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Share and asset amounts exceed JSON-safe integers; addresses may be objects.
        return json.dumps(payload, ensure_ascii=False, default=str)


def _plain_formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(scope)s%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _handler(
    handler: logging.Handler, level: int | str, formatter: logging.Formatter
) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(OperationFilter())
    return handler


def configure_logging(
    *,
    settings: Settings | None = None,
    level: int | str = logging.INFO,
    structured: bool | None = None,
    module_levels: Mapping[str, int | str] | None = None,
    stream: IO[str] | None = None,
    context: Mapping[str, Any] | None = None,
    log_file: Path | None = None,
) -> None:
    """Install stream and file handlers on the root logger.

    ``structured=None`` defers to ``settings.structured_logging``.
    ``module_levels`` is layered over :data:`DEFAULT_MODULE_LEVELS`, e.g.
    ``{"nexus_vault.engine": logging.WARNING}`` quiets long simulations.
    ``context`` is stamped on every JSON record (the CLI passes the command).
    The file copy goes to ``log_file`` or ``<logs_dir>/nexus_vault.log``.
    """

    settings = settings or get_settings()
    structured = settings.structured_logging if structured is None else structured
    formatter = JSONFormatter(default_context=context) if structured else _plain_formatter()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(_handler(logging.StreamHandler(stream), level, formatter))

    file_target = log_file or (settings.logs_dir / LOG_FILE_NAME)
    file_target.parent.mkdir(parents=True, exist_ok=True)
    root_logger.addHandler(
        _handler(logging.FileHandler(file_target, encoding="utf-8"), level, formatter)
    )

    levels: dict[str, int | str] = dict(DEFAULT_MODULE_LEVELS)
    levels.update(module_levels or {})
    for logger_name, logger_level in levels.items():
        logging.getLogger(logger_name).setLevel(logger_level)
