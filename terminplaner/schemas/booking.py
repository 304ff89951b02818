from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date


class SlotResponse(BaseModel):
    date: date
    time: str
    timestamp: datetime
    available: bool = True


class BookingCreate(BaseModel):
    topic_id: int
    slot_timestamp: datetime
    customer_name: str = Field(..., min_length=1)
    customer_email: str = Field(..., min_length=3)
    customer_phone: Optional[str] = None


class BookingCancelRequest(BaseModel):
    token: str
    reason: Optional[str] = None


class ProviderCancelRequest(BaseModel):
    reason: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    cancellation_token: str
    slot_start_time: datetime
    slot_end_time: datetime
    customer_name: str
    customer_email: str
    customer_phone: Optional[str] = None
    status: str
    cancellation_reason: Optional[str] = None
    reminder_sent: bool = False
    is_archived: bool = False
    topic_id: Optional[int] = None
    provider_id: Optional[int] = None

    class Config:
        from_attributes = True


class RecoveryRequest(BaseModel):
    email: str = Field(..., min_length=3)
