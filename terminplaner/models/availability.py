from sqlalchemy import Column, Integer, String, ForeignKey, Date
from sqlalchemy.orm import relationship
from ..core.database import Base
import enum


class Recurrence(str, enum.Enum):
    DAILY = "daily"  # legacy, never matched by the slot resolver
    WEEKLY = "weekly"
    ODD_WEEK = "odd_week"
    EVEN_WEEK = "even_week"
    SPECIFIC_DATE = "specific_date"


class AvailabilityRule(Base):
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    recurrence = Column(String, nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0-6 (Sunday-Saturday), null for specific_date
    specific_date = Column(Date, nullable=True)

    start_time = Column(String, nullable=False)  # "09:00"
    end_time = Column(String, nullable=False)    # "18:00"
    valid_until = Column(Date, nullable=True)

    # Set when the row is managed by a batch config
    batch_config_id = Column(Integer, ForeignKey("batch_config.id", ondelete="CASCADE"), nullable=True, index=True)

    user = relationship("User", back_populates="availabilities")
    batch_config = relationship("BatchConfig", back_populates="availabilities")
