"""
Product model for Upkeep.

Products are the owned items that maintenance tasks attach to.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List
from uuid import uuid4

from upkeep.dates import parse_date, parse_datetime, to_iso, utc_now
from upkeep.models.task import Task

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lowercase, hyphen-separated form of a product name."""
    slug = _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")
    return slug or "product"


def _as_list(value) -> List[str]:
    # SQLite stores arrays as JSON text
    if value is None:
        return []
    if isinstance(value, str):
        return json.loads(value)
    return list(value)


@dataclass
class Product:
    """
    An owned item that needs maintenance.

    Attributes:
        id: Unique identifier (UUID)
        user_id: Owner
        name: Display name
        slug: URL-friendly name, unique per owner
        category: Optional category
        manufacturer: Optional manufacturer
        model: Optional model name
        tags: List of tags
        purchase_date: Optional purchase date
        task_ids: Ids of the product's tasks, in creation order
        created_at: When created
        updated_at: When last modified
        last_overall_maintenance: Completed task with the latest last
            maintenance; computed on read, never stored
        next_overall_maintenance: Unfinished task with the earliest next
            maintenance; computed on read, never stored
    """

    user_id: str
    name: str
    slug: str
    id: str = field(default_factory=lambda: str(uuid4()))
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    purchase_date: Optional[date] = None
    task_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_overall_maintenance: Optional[Task] = None
    next_overall_maintenance: Optional[Task] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utc_now()
        if self.updated_at is None:
            self.updated_at = self.created_at

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        last_task = self.last_overall_maintenance
        next_task = self.next_overall_maintenance
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "slug": self.slug,
            "category": self.category,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "tags": self.tags,
            "purchase_date": to_iso(self.purchase_date),
            "task_ids": self.task_ids,
            "last_overall_maintenance": last_task.to_dict() if last_task else None,
            "next_overall_maintenance": next_task.to_dict() if next_task else None,
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Create Product from a database row."""
        return cls(
            id=data.get("id"),
            user_id=data.get("user_id"),
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            category=data.get("category"),
            manufacturer=data.get("manufacturer"),
            model=data.get("model"),
            tags=_as_list(data.get("tags")),
            purchase_date=parse_date(data.get("purchase_date")),
            task_ids=_as_list(data.get("task_ids")),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )
