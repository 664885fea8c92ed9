"""Domain errors raised below the HTTP layer and mapped to status codes in main."""

from __future__ import annotations


class PayloadValidationError(Exception):
    """A submitted payload violated one or more field rules."""

    def __init__(self, errors: list[dict[str, str]]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors


class ReferentialIntegrityError(PayloadValidationError):
    """A foreign-key field points at a record that does not exist."""

    def __init__(self, field: str, message: str):
        super().__init__([{"field": field, "message": message}])
        self.field = field


class ConflictError(Exception):
    """The write would violate a uniqueness or restrict-on-delete rule."""
