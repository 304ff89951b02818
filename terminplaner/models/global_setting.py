from sqlalchemy import Column, String, Text, Boolean
from ..core.database import Base


class GlobalSetting(Base):
    __tablename__ = "global_settings"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=True)
    is_encrypted = Column(Boolean, default=False)

    def __repr__(self):
        return f"<GlobalSetting(key='{self.key}', value='{self.value}')>"
