from .department import Department, user_departments, batch_departments
from .user import User
from .availability import AvailabilityRule, Recurrence
from .time_off import TimeOff
from .topic import Topic
from .booking import Booking, BookingStatus
from .batch_config import BatchConfig, RuleType, TargetType
from .global_setting import GlobalSetting
from ..core.database import Base

__all__ = [
    "Base",
    "Department",
    "user_departments",
    "batch_departments",
    "User",
    "AvailabilityRule",
    "Recurrence",
    "TimeOff",
    "Topic",
    "Booking",
    "BookingStatus",
    "BatchConfig",
    "RuleType",
    "TargetType",
    "GlobalSetting",
]
