from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..core.database import Base
import enum
import uuid


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Booking(Base):
    __tablename__ = "booking"

    id = Column(Integer, primary_key=True, index=True)
    cancellation_token = Column(String, nullable=False, unique=True, index=True, default=lambda: str(uuid.uuid4()))
    slot_start_time = Column(DateTime, nullable=False, index=True)
    slot_end_time = Column(DateTime, nullable=False)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    status = Column(String, default=BookingStatus.CONFIRMED.value)  # confirmed, cancelled
    cancellation_reason = Column(String, nullable=True)
    reminder_sent = Column(Boolean, default=False)
    is_archived = Column(Boolean, default=False)
    topic_id = Column(Integer, ForeignKey("topic.id", ondelete="SET NULL"), nullable=True)
    provider_id = Column(Integer, ForeignKey("user.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    topic = relationship("Topic", back_populates="bookings")
    provider = relationship("User")
