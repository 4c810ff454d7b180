# utils/safe_call.py
"""
Isolation boundaries for the notification pipeline.

A failure inside a boundary (one token, one recipient, one batch, one cycle) is
logged with its scope and identifier and never reaches the caller.
CancelledError is not an Exception and always propagates.
"""
import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def isolation_boundary(scope: str, ident: Any = None):
    try:
        yield
    except Exception:
        logger.exception("Isolated failure in %s %s", scope, ident)


async def run_isolated(
    awaitable: Awaitable,
    scope: str,
    ident: Any = None,
    timeout: Optional[float] = None,
    default: Any = None,
):
    """
    Await `awaitable`; on error or timeout log and return `default`.
    """
    try:
        if timeout is not None:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        return await awaitable
    except asyncio.TimeoutError:
        logger.warning("Timed out after %.1fs in %s %s", timeout, scope, ident)
    except Exception:
        logger.exception("Isolated failure in %s %s", scope, ident)
    return default
