"""
Business logic services for Upkeep.
"""

from upkeep.services.actions import ActionLogService
from upkeep.services.calendar import CalendarService
from upkeep.services.products import ProductService
from upkeep.services.tasks import TaskService

__all__ = [
    "TaskService",
    "ProductService",
    "CalendarService",
    "ActionLogService",
]
