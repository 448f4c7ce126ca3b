"""
Database package for the Aircraft Maintenance Tracker.
"""

from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import (
    AircraftModel,
    AttachmentModel,
    ChecklistItemModel,
    CounterModel,
    IssueModel,
    MaintenanceEntryModel,
    TaskModel,
    UserModel,
)

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "AircraftModel",
    "AttachmentModel",
    "ChecklistItemModel",
    "CounterModel",
    "IssueModel",
    "MaintenanceEntryModel",
    "TaskModel",
    "UserModel",
]
