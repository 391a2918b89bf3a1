"""Callbacks with bound arguments, run when a timer expires."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)


class DelayFunc:
    """A function together with the positional arguments it is called with."""

    __slots__ = ("func", "args")

    def __init__(self, func: Callable[..., Any], args: Iterable[Any] = ()) -> None:
        self.func = func
        self.args = tuple(args)

    def __str__(self) -> str:
        name = getattr(self.func, "__name__", type(self.func).__name__)
        return f"{{DelayFunc:{name}, args:{list(self.args)}}}"

    def __repr__(self) -> str:
        return f"DelayFunc({self.func!r}, {self.args!r})"

    def call(self) -> None:
        """Call the function; an exception it raises is logged, not propagated."""
        try:
            self.func(*self.args)
        except Exception as exc:
            logger.error("%s Call err: %s", self, exc)