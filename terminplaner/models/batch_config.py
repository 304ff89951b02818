from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..core.database import Base
from .department import batch_departments
import enum


class RuleType(str, enum.Enum):
    TOPIC = "topic"
    AVAILABILITY = "availability"


class TargetType(str, enum.Enum):
    USER = "user"
    DEPARTMENT = "department"


class BatchConfig(Base):
    __tablename__ = "batch_config"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    rule_type = Column(String, nullable=False)
    target_type = Column(String, nullable=False, default=TargetType.USER.value)
    # Template copied into every owned row, shape depends on rule_type
    config_data = Column(JSON, nullable=False)
    apply_to_future = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    departments = relationship("Department", secondary=batch_departments, back_populates="batch_configs")
    availabilities = relationship("AvailabilityRule", back_populates="batch_config", passive_deletes=True)
    topics = relationship("Topic", back_populates="batch_config", passive_deletes=True)
