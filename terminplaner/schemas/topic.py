from pydantic import BaseModel, Field
from typing import Optional


class TopicTemplate(BaseModel):
    title: str = Field(..., min_length=1)
    duration_minutes: int = Field(..., gt=0, description="Length of one bookable slot")
    description: Optional[str] = None


class TopicCreate(TopicTemplate):
    pass


class TopicUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    duration_minutes: Optional[int] = Field(None, gt=0)
    description: Optional[str] = None


class TopicResponse(BaseModel):
    id: int
    user_id: int
    title: str
    duration_minutes: int
    description: Optional[str] = None
    batch_config_id: Optional[int] = None

    class Config:
        from_attributes = True
