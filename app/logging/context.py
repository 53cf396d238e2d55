"""Context propagation for structured logging.

Fields pushed here (``run_id``, ``notification_id``, ``target_type``...) are
injected into every log record emitted inside the scope. Context lives in a
ContextVar, so each worker thread in the send pool starts from an empty
context unless the caller copies it in.
"""

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, Dict, Iterator


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Get a copy of the current logging context."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge fields into the logging context.

    Args:
        **kwargs: Key-value pairs to add to the logging context

    Returns:
        Token that restores the previous context via pop_log_context()

    Example:
        >>> token = push_log_context(run_id="abc123", notification_id="n-1")
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the logging context to the state captured by ``token``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Clear all logging context fields (used by tests)."""
    LogContextVar.set({})


@contextmanager
def log_context(**kwargs) -> Iterator[Dict[str, Any]]:
    """Scope logging context fields to a ``with`` block.

    The previous context is restored on exit, including when the block raises.

    Example:
        >>> with log_context(run_id="abc123", notification_id="n-1"):
        ...     logger.info("Resolving audience")
    """
    token = push_log_context(**kwargs)
    try:
        yield get_log_context()
    finally:
        pop_log_context(token)
