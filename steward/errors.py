"""Exceptions raised by the steward core and its edges."""
from __future__ import annotations


class StewardError(Exception):
    """Base class for steward errors."""

    pass


class UnknownActionError(StewardError, ValueError):
    """Raised when an action name is absent from every permission table."""

    def __init__(self, action: str):
        super().__init__(f"unknown action: {action!r}")
        self.action = action


class RoleUnresolvedError(StewardError):
    """Raised when a side effect must wait for the role and nothing can resolve it."""

    pass


class ConfirmationError(StewardError):
    """Raised when a confirmation token does not verify for the requested action."""

    pass
