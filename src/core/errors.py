"""Error taxonomy shared by the core and adapters."""

from __future__ import annotations


class AutomodError(Exception):
    """Base class for all automod failures."""


class SchemaError(AutomodError):
    """A submitted item matched none of the known rule shapes.

    Instances are also returned (not raised) by the parser as per-item
    markers so a batch can mix valid rules and rejected items.
    """

    def __init__(self, index: int, detail: str) -> None:
        super().__init__(f"item {index + 1}: unrecognized schema ({detail})")
        self.index = index
        self.detail = detail


class AuthorizationError(AutomodError):
    """A submission gate refused the item."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class StorageError(AutomodError):
    """Persistence failed (constraint violation, I/O error)."""


class CapabilityError(AutomodError):
    """A call into the external platform failed."""
