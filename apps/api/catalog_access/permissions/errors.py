from __future__ import annotations


class PermissionFilterError(Exception):
    """Base error for catalog permission filter compilation failures."""


class ClauseInvariantError(PermissionFilterError):
    """Raised when a clause's placeholders and bound parameters drift apart."""

    def __init__(self, message: str, *, placeholders: int | None = None, params: int | None = None) -> None:
        self.placeholders = placeholders
        self.params = params
        super().__init__(message)
