# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import user, leave, file, notification

# Explicit class exports for cleaner imports
from .user import User, UserRole, LeaveType, DEFAULT_LEAVE_BALANCES
from .leave import Leave, LeaveStatus
from .file import File
from .notification import Notification, NotificationType

__all__ = [
    "User",
    "UserRole",
    "LeaveType",
    "DEFAULT_LEAVE_BALANCES",
    "Leave",
    "LeaveStatus",
    "File",
    "Notification",
    "NotificationType",
]
