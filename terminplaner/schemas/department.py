from pydantic import BaseModel, Field
from typing import Optional, List


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    user_ids: Optional[List[int]] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    # Full replacement of the member list when given
    user_ids: Optional[List[int]] = None


class DepartmentBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class DepartmentMember(BaseModel):
    id: int
    username: str
    display_name: str

    class Config:
        from_attributes = True


class DepartmentResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    users: List[DepartmentMember] = []

    class Config:
        from_attributes = True
