from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from typing import List
from ..core.exceptions import NotFoundError, ForbiddenError
from ..models.availability import AvailabilityRule
from ..schemas.availability import AvailabilityCreate
import logging

logger = logging.getLogger(__name__)


class AvailabilityService:
    """A user's own availability rules"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: int) -> List[AvailabilityRule]:
        result = await self.db.execute(
            select(AvailabilityRule)
            .where(AvailabilityRule.user_id == user_id)
            .order_by(AvailabilityRule.specific_date, AvailabilityRule.day_of_week, AvailabilityRule.start_time)
        )
        return result.scalars().all()

    async def create_for_user(self, user_id: int, rule_data: AvailabilityCreate) -> AvailabilityRule:
        try:
            rule = AvailabilityRule(**rule_data.dict(), user_id=user_id)
            self.db.add(rule)
            await self.db.commit()
            await self.db.refresh(rule)
            logger.info(f"Availability rule {rule.id} created for user {user_id}")
            return rule
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create availability rule for user {user_id}: {e}")
            raise

    async def delete_for_user(self, user_id: int, rule_id: int) -> bool:
        try:
            result = await self.db.execute(
                select(AvailabilityRule).where(
                    AvailabilityRule.id == rule_id,
                    AvailabilityRule.user_id == user_id,
                )
            )
            rule = result.scalar_one_or_none()
            if not rule:
                raise NotFoundError(f"Availability rule {rule_id} not found")
            if rule.batch_config_id is not None:
                raise ForbiddenError("This rule is managed centrally and cannot be deleted")

            await self.db.execute(delete(AvailabilityRule).where(AvailabilityRule.id == rule_id))
            await self.db.commit()
            logger.info(f"Availability rule {rule_id} of user {user_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete availability rule {rule_id}: {e}")
            raise
