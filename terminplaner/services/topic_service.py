from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from typing import Optional, List
from ..core.exceptions import NotFoundError, ForbiddenError
from ..models.booking import Booking
from ..models.topic import Topic
from ..schemas.topic import TopicCreate, TopicUpdate
import logging

logger = logging.getLogger(__name__)


class TopicService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_topic_by_id(self, topic_id: int) -> Optional[Topic]:
        try:
            result = await self.db.execute(select(Topic).where(Topic.id == topic_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to load topic {topic_id}: {e}")
            raise

    async def list_for_user(self, user_id: int) -> List[Topic]:
        result = await self.db.execute(
            select(Topic).where(Topic.user_id == user_id).order_by(Topic.title, Topic.id)
        )
        return result.scalars().all()

    async def create_for_user(self, user_id: int, topic_data: TopicCreate) -> Topic:
        try:
            topic = Topic(**topic_data.dict(), user_id=user_id)
            self.db.add(topic)
            await self.db.commit()
            await self.db.refresh(topic)
            logger.info(f"Topic {topic.id} created for user {user_id}")
            return topic
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create topic for user {user_id}: {e}")
            raise

    async def _get_own_mutable_topic(self, user_id: int, topic_id: int) -> Topic:
        topic = await self.get_topic_by_id(topic_id)
        if not topic or topic.user_id != user_id:
            raise NotFoundError(f"Topic {topic_id} not found")
        if topic.batch_config_id is not None:
            raise ForbiddenError("This topic is managed centrally and cannot be changed")
        return topic

    async def update_for_user(self, user_id: int, topic_id: int, topic_data: TopicUpdate) -> Topic:
        try:
            topic = await self._get_own_mutable_topic(user_id, topic_id)
            for field, value in topic_data.dict(exclude_unset=True).items():
                if value is None and field != "description":
                    continue
                setattr(topic, field, value)
            await self.db.commit()
            await self.db.refresh(topic)
            logger.info(f"Topic {topic_id} of user {user_id} updated")
            return topic
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update topic {topic_id}: {e}")
            raise

    async def delete_for_user(self, user_id: int, topic_id: int) -> bool:
        try:
            await self._get_own_mutable_topic(user_id, topic_id)

            # Bookings keep their history without the topic
            await self.db.execute(update(Booking).where(Booking.topic_id == topic_id).values(topic_id=None))
            await self.db.execute(delete(Topic).where(Topic.id == topic_id))
            await self.db.commit()
            logger.info(f"Topic {topic_id} of user {user_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete topic {topic_id}: {e}")
            raise
