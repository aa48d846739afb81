"""
Error taxonomy for Upkeep.

Every failure leaving a service is one of these types. Storage-level
exceptions are translated before they reach the caller.
"""

from typing import Optional


class UpkeepError(Exception):
    """Base class for all Upkeep errors."""


class ValidationError(UpkeepError, ValueError):
    """
    Malformed or invariant-violating input.

    Attributes:
        field: Name of the offending field, when there is one
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        return {"error": "validation", "message": self.message, "field": self.field}


class NotFoundError(UpkeepError, LookupError):
    """
    A referenced entity does not exist or is not owned by the caller.

    Both cases are reported identically so callers cannot probe for ids
    belonging to other users.
    """

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id

    def to_dict(self) -> dict:
        return {"error": "not_found", "entity": self.entity, "id": self.entity_id}


class ConflictError(UpkeepError):
    """A concurrent write the store could not serialize."""


class StorageError(UpkeepError):
    """The persistence store failed; details are logged, not exposed."""
