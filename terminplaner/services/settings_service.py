from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional, List, Dict
from ..models.global_setting import GlobalSetting
import logging

logger = logging.getLogger(__name__)

MIN_BOOKING_NOTICE_HOURS = "min_booking_notice_hours"
REMINDER_LEAD_TIME = "reminder_lead_time"

# Keys readable without authentication
PUBLIC_KEYS = ("school_logo", "app_title", "primary_color")


class SettingsService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Read a global setting, falling back to default when unset"""
        try:
            setting = await self.db.get(GlobalSetting, key)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to read setting {key}: {e}")
            return default
        if setting is None or setting.value in (None, ""):
            return default
        return setting.value

    async def get_int(self, key: str, default: int) -> int:
        value = await self.get_value(key)
        if value is None:
            return default
        try:
            return int(str(value).strip())
        except ValueError:
            logger.warning(f"Setting {key} is not an integer: {value!r}, using {default}")
            return default

    async def get_all(self) -> List[GlobalSetting]:
        result = await self.db.execute(select(GlobalSetting).order_by(GlobalSetting.key))
        return result.scalars().all()

    async def get_public(self) -> Dict[str, Optional[str]]:
        result = await self.db.execute(
            select(GlobalSetting).where(GlobalSetting.key.in_(PUBLIC_KEYS))
        )
        return {setting.key: setting.value for setting in result.scalars().all()}

    async def upsert(self, key: str, value: Optional[str]) -> GlobalSetting:
        try:
            setting = await self.db.get(GlobalSetting, key)
            if setting is None:
                setting = GlobalSetting(key=key, value=value)
                self.db.add(setting)
            else:
                setting.value = value
            await self.db.commit()
            logger.info(f"Setting {key} updated")
            return setting
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update setting {key}: {e}")
            raise
