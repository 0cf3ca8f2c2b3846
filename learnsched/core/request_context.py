from __future__ import annotations

from contextvars import ContextVar, Token
import logging
from typing import Optional

_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def set_correlation_id(correlation_id: Optional[str]) -> Token[str]:
    return _correlation_id_var.set(correlation_id or "")


def reset_correlation_id(token: Token[str]) -> None:
    _correlation_id_var.reset(token)


def get_correlation_id(default: Optional[str] = None) -> Optional[str]:
    value = _correlation_id_var.get()
    return value if value else default


def get_correlation_id_value(default: str = "no-correlation") -> str:
    value = _correlation_id_var.get()
    return value if value else default


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id_value()
        return True


def attach_correlation_id_filter(logger: Optional[logging.Logger] = None) -> None:
    target = logger or logging.getLogger()
    for handler in target.handlers:
        handler.addFilter(CorrelationIdFilter())
