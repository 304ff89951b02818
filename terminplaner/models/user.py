from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..core.database import Base
from .department import user_departments


class User(Base):
    __tablename__ = "user"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)  # null for LDAP accounts
    display_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    auth_method = Column(String, default="local")  # local, ldap
    position = Column(String, nullable=True)
    profile_image = Column(String, nullable=True)
    show_email = Column(Boolean, default=True)
    location = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    departments = relationship("Department", secondary=user_departments, back_populates="users")
    availabilities = relationship("AvailabilityRule", back_populates="user")
    topics = relationship("Topic", back_populates="user")
    time_offs = relationship("TimeOff", back_populates="user")
