# Services
from .settings_service import SettingsService
from .slot_service import SlotService
from .batch_service import BatchService
from .department_service import DepartmentService
from .user_service import UserService
from .availability_service import AvailabilityService
from .topic_service import TopicService
from .time_off_service import TimeOffService
from .booking_service import BookingService
from .notification_service import NotificationService, notification_service
from .auth_service import create_session_token, verify_session_token, hash_password, verify_password

__all__ = [
    "SettingsService",
    "SlotService",
    "BatchService",
    "DepartmentService",
    "UserService",
    "AvailabilityService",
    "TopicService",
    "TimeOffService",
    "BookingService",
    "NotificationService",
    "notification_service",
    "create_session_token",
    "verify_session_token",
    "hash_password",
    "verify_password",
]
