# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, spms_cycle, performance, audit_log, notification
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .spms_cycle import SPMSCycle
from .performance import PerformanceForm, PerformanceLineItem, FormKind, FormStatus, ItemCategory
from .audit_log import AuditLog
from .notification import Notification

__all__ = [
    "User",
    "UserRole",
    "SPMSCycle",
    "PerformanceForm",
    "PerformanceLineItem",
    "FormKind",
    "FormStatus",
    "ItemCategory",
    "AuditLog",
    "Notification",
]
