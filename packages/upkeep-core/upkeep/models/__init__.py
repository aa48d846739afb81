"""
Core data models for Upkeep.
"""

from upkeep.models.action import MaintenanceAction
from upkeep.models.commands import (
    CreateProductCommand,
    CreateTaskCommand,
    ProductQuery,
    TaskQuery,
    UpdateProductCommand,
    UpdateTaskCommand,
)
from upkeep.models.page import Page
from upkeep.models.product import Product
from upkeep.models.task import (
    IntervalSchedule,
    MaintenanceWindow,
    Task,
    WindowSchedule,
)

__all__ = [
    "Task",
    "Product",
    "MaintenanceAction",
    "MaintenanceWindow",
    "IntervalSchedule",
    "WindowSchedule",
    "Page",
    "CreateTaskCommand",
    "UpdateTaskCommand",
    "TaskQuery",
    "CreateProductCommand",
    "UpdateProductCommand",
    "ProductQuery",
]
