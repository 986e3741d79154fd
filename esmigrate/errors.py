"""Exceptions raised by the migration pipeline."""

from __future__ import annotations


class MigrationError(Exception):
    """Base class for migration faults."""


class InputUnavailableError(MigrationError):
    def __init__(self, path: str, reason: str | None = None) -> None:
        self.path = path
        self.reason = reason
        message = f"Input unavailable: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class FrozenTableError(MigrationError):
    """A frozen symbol table or dependency graph was asked to change."""
