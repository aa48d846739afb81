"""
Maintenance action model for Upkeep.

Actions are the audit trail of writes: one row per successful create,
update, complete, postpone or delete.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import uuid4

from upkeep.dates import parse_datetime, to_iso, utc_now


# Valid action values
ACTION_TYPES = ("CREATE", "UPDATE", "COMPLETE", "POSTPONE", "DELETE")

# Valid entity types
ENTITY_TYPES = ("TASK", "PRODUCT")


@dataclass
class MaintenanceAction:
    """
    A logged write.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Who performed the write
        action: One of ACTION_TYPES
        entity_type: TASK or PRODUCT
        entity_id: Id of the written entity
        message: Human-readable summary
        created_at: When the write committed
    """

    user_id: str
    action: str
    entity_type: str
    entity_id: str
    message: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utc_now()

        if self.action not in ACTION_TYPES:
            raise ValueError(
                f"Invalid action '{self.action}'. "
                f"Must be one of: {', '.join(ACTION_TYPES)}"
            )
        if self.entity_type not in ENTITY_TYPES:
            raise ValueError(
                f"Invalid entity type '{self.entity_type}'. "
                f"Must be one of: {', '.join(ENTITY_TYPES)}"
            )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "message": self.message,
            "created_at": to_iso(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MaintenanceAction":
        """Create MaintenanceAction from a database row."""
        return cls(
            id=data.get("id"),
            user_id=data.get("user_id"),
            action=data.get("action"),
            entity_type=data.get("entity_type"),
            entity_id=data.get("entity_id"),
            message=data.get("message"),
            created_at=parse_datetime(data.get("created_at")),
        )
