from .availability import AvailabilityCreate, AvailabilityTemplate, AvailabilityResponse
from .topic import TopicCreate, TopicTemplate, TopicUpdate, TopicResponse
from .time_off import TimeOffCreate, TimeOffResponse
from .booking import (
    SlotResponse, BookingCreate, BookingCancelRequest, RecoveryRequest,
    ProviderCancelRequest, BookingResponse
)
from .department import (
    DepartmentCreate, DepartmentUpdate, DepartmentBrief,
    DepartmentMember, DepartmentResponse
)
from .batch_config import BatchConfigCreate, BatchConfigUpdate, BatchConfigResponse
from .user import (
    UserCreate, UserUpdate, UserResponse, DirectoryUserResponse,
    LoginRequest, SetupRequest
)
from .settings import SettingUpdate, SettingResponse

__all__ = [
    "AvailabilityCreate", "AvailabilityTemplate", "AvailabilityResponse",
    "TopicCreate", "TopicTemplate", "TopicUpdate", "TopicResponse",
    "TimeOffCreate", "TimeOffResponse",
    "SlotResponse", "BookingCreate", "BookingCancelRequest", "RecoveryRequest",
    "ProviderCancelRequest", "BookingResponse",
    "DepartmentCreate", "DepartmentUpdate", "DepartmentBrief",
    "DepartmentMember", "DepartmentResponse",
    "BatchConfigCreate", "BatchConfigUpdate", "BatchConfigResponse",
    "UserCreate", "UserUpdate", "UserResponse", "DirectoryUserResponse",
    "LoginRequest", "SetupRequest",
    "SettingUpdate", "SettingResponse",
]
