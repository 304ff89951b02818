from sqlalchemy import Column, Integer, String, ForeignKey, Text
from sqlalchemy.orm import relationship
from ..core.database import Base


class Topic(Base):
    __tablename__ = "topic"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    batch_config_id = Column(Integer, ForeignKey("batch_config.id", ondelete="CASCADE"), nullable=True, index=True)

    user = relationship("User", back_populates="topics")
    batch_config = relationship("BatchConfig", back_populates="topics")
    bookings = relationship("Booking", back_populates="topic")
