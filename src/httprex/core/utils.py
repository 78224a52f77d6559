"""Shared utility functions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")


def safe_call(
    fn: Callable[[], Any],
    call_logger: logging.Logger,
    message: str,
    *message_args: Any,
) -> None:
    """Invoke *fn*, logging any exception as a warning instead of raising.

    Used for change listeners and other callbacks where one failing
    subscriber must not stop the others.

    Args:
        fn: Zero-argument callable to invoke.
        call_logger: Logger instance for warning output.
        message: Log message template (``%s``-style).
        *message_args: Arguments interpolated into *message*.
    """
    try:
        fn()
    except Exception:
        call_logger.warning(message, *message_args, exc_info=True)


async def maybe_await(value: T | Awaitable[T]) -> T:
    """Return *value*, awaiting it first if it is awaitable.

    Lets extension points such as ``SecretProvider.is_available`` be
    implemented either as plain or as ``async`` methods.
    """
    if inspect.isawaitable(value):
        return await value
    return value
