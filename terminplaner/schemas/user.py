from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from .department import DepartmentBrief


class UserBase(BaseModel):
    username: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    email: Optional[str] = None
    auth_method: str = "local"
    position: Optional[str] = None
    profile_image: Optional[str] = None
    show_email: bool = True
    location: Optional[str] = None
    is_admin: bool = False


class UserCreate(UserBase):
    password: Optional[str] = None


class UserUpdate(BaseModel):
    display_name: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    profile_image: Optional[str] = None
    show_email: Optional[bool] = None
    location: Optional[str] = None
    is_admin: Optional[bool] = None
    password: Optional[str] = None


class UserResponse(UserBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DirectoryUserResponse(BaseModel):
    id: int
    display_name: str
    email: Optional[str] = None
    position: Optional[str] = None
    profile_image: Optional[str] = None
    show_email: bool = True
    departments: List[DepartmentBrief] = []
    has_availability: bool = False


class LoginRequest(BaseModel):
    username: str
    password: str


class SetupRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)
    email: Optional[str] = None
