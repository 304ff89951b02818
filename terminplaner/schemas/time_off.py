from pydantic import BaseModel, validator
from typing import Optional
from datetime import date


class TimeOffCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @validator('end_date')
    def validate_range(cls, v, values):
        if values.get('start_date') and v < values['start_date']:
            raise ValueError('end_date must not be before start_date')
        return v


class TimeOffResponse(BaseModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    reason: Optional[str] = None

    class Config:
        from_attributes = True
