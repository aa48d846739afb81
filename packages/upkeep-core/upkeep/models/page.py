"""Paged result envelope."""

import math
from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of an ordered listing."""

    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def to_dict(self) -> dict:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
        }
