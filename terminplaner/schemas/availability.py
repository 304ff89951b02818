from pydantic import BaseModel, Field, validator, model_validator
from typing import Optional
from datetime import date
from ..models.availability import Recurrence


def normalize_time(value: str) -> str:
    """Check an "HH:MM" string and return it zero-padded"""
    try:
        hours, minutes = map(int, value.split(':'))
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ValueError
    except (ValueError, AttributeError):
        raise ValueError(f'Invalid time "{value}", expected HH:MM (e.g. 09:00)')
    return f"{hours:02d}:{minutes:02d}"


class AvailabilityBase(BaseModel):
    recurrence: Recurrence
    day_of_week: Optional[int] = Field(None, ge=0, le=6, description="0=Sunday .. 6=Saturday")
    specific_date: Optional[date] = None
    start_time: str = Field(..., description="Start of the window, e.g. 09:00")
    end_time: str = Field(..., description="End of the window, e.g. 12:00")
    valid_until: Optional[date] = None

    class Config:
        use_enum_values = True


class AvailabilityTemplate(AvailabilityBase):
    """Validated shape of an availability rule, also used as batch config payload"""

    @validator('start_time', 'end_time')
    def validate_time_format(cls, v):
        return normalize_time(v)

    @validator('end_time')
    def validate_end_time(cls, v, values):
        if values.get('start_time') and v <= values['start_time']:
            raise ValueError('end_time must be after start_time')
        return v

    @model_validator(mode="after")
    def validate_day_or_date(self):
        """Exactly one of day_of_week / specific_date is meaningful per recurrence"""
        if self.recurrence == Recurrence.SPECIFIC_DATE:
            if self.specific_date is None:
                raise ValueError('specific_date is required for specific_date rules')
        elif self.recurrence != Recurrence.DAILY:
            if self.day_of_week is None:
                raise ValueError('day_of_week is required for weekly, odd_week and even_week rules')
            if self.specific_date is not None:
                raise ValueError('specific_date is only allowed for specific_date rules')
        return self


class AvailabilityCreate(AvailabilityTemplate):
    pass


class AvailabilityResponse(AvailabilityBase):
    id: int
    user_id: int
    batch_config_id: Optional[int] = None

    class Config:
        from_attributes = True
