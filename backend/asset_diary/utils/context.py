# backend/asset_diary/utils/context.py
"""
Request-scoped correlation ID.

Stored in a ContextVar so it follows the request through async code. Thread
pool tasks only see it when submitted through contextvars.copy_context().run.

Usage:
    from asset_diary.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")      # middleware
    get_correlation_id()               # anywhere -> "abc-123"
"""

from contextvars import ContextVar, Token

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> Token:
    """Set the ID for the current context; returns a token for reset_correlation_id()."""
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    _correlation_id_var.reset(token)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)
