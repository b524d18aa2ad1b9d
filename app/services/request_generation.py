"""
app/services/request_generation.py

Generation tracking so a superseded refresh never overwrites a newer one.
"""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ViewState(Generic[T]):
    """
    Holds the currently displayed value for one dashboard view.

    Each refresh calls :meth:`begin` to obtain a generation token and later
    hands its result to :meth:`publish`. Results carrying a token older than
    the latest one are dropped.

    Usage::

        token = state.begin()
        result = await load()
        state.publish(token, result)
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._generation = 0
        self._value: T | None = None
        self._published_generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def value(self) -> T | None:
        return self._value

    @property
    def published_generation(self) -> int:
        return self._published_generation

    def begin(self) -> int:
        """Start a new request generation and return its token."""
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def publish(self, token: int, value: T) -> bool:
        """
        Store *value* if *token* is still the latest generation.

        Returns ``False`` for stale tokens; the value is discarded.
        """

        if not self.is_current(token):
            logger.debug(
                "Discarded stale result view=%s token=%d current=%d",
                self.name,
                token,
                self._generation,
            )
            return False
        self._value = value
        self._published_generation = token
        return True

    def clear(self, token: int) -> bool:
        """Reset the displayed value for the current generation only."""
        if not self.is_current(token):
            return False
        self._value = None
        self._published_generation = token
        return True
