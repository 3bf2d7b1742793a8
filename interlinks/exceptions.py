"""Errors raised by the interlinks app."""

from __future__ import annotations


class InterlinkError(Exception):
    """Base class for interlinking errors."""


class InvalidTransition(InterlinkError):
    """A link record was asked to move to a status its lifecycle forbids."""

    def __init__(self, current: str, requested: str) -> None:
        super().__init__(f"Cannot move a {current} link to {requested}.")
        self.current = current
        self.requested = requested
