from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List
from ..core.exceptions import NotFoundError
from ..models.time_off import TimeOff
from ..schemas.time_off import TimeOffCreate
import logging

logger = logging.getLogger(__name__)


class TimeOffService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[TimeOff]:
        result = await self.db.execute(
            select(TimeOff).where(TimeOff.user_id == user_id).order_by(TimeOff.start_date)
        )
        return result.scalars().all()

    async def create_for_user(self, user_id: int, time_off_data: TimeOffCreate) -> TimeOff:
        try:
            time_off = TimeOff(**time_off_data.dict(), user_id=user_id)
            self.db.add(time_off)
            await self.db.commit()
            await self.db.refresh(time_off)
            logger.info(f"Time off {time_off.id} created for user {user_id}")
            return time_off
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create time off for user {user_id}: {e}")
            raise

    async def delete_for_user(self, user_id: int, time_off_id: int) -> bool:
        try:
            result = await self.db.execute(
                select(TimeOff.id).where(TimeOff.id == time_off_id, TimeOff.user_id == user_id)
            )
            if result.scalar_one_or_none() is None:
                raise NotFoundError(f"Time off {time_off_id} not found")

            await self.db.execute(delete(TimeOff).where(TimeOff.id == time_off_id))
            await self.db.commit()
            logger.info(f"Time off {time_off_id} of user {user_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete time off {time_off_id}: {e}")
            raise
