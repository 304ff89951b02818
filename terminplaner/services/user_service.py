from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update, or_, exists
from sqlalchemy.orm import selectinload
from typing import Optional, List
from ..core.clock import Clock, system_clock
from ..core.exceptions import NotFoundError, ForbiddenError, ConflictError
from ..models.availability import AvailabilityRule
from ..models.booking import Booking
from ..models.department import user_departments
from ..models.time_off import TimeOff
from ..models.topic import Topic
from ..models.user import User
from ..schemas.user import UserCreate, UserUpdate, SetupRequest
from .auth_service import hash_password, verify_password
from .batch_service import BatchService
import logging

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        """User with departments loaded"""
        try:
            result = await self.db.execute(
                select(User)
                .options(selectinload(User.departments))
                .where(User.id == user_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to load user {user_id}: {e}")
            raise

    async def get_user(self, user_id: int) -> User:
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def list_users(self) -> List[User]:
        result = await self.db.execute(
            select(User).options(selectinload(User.departments)).order_by(User.display_name)
        )
        return result.scalars().all()

    async def list_directory(self, clock: Optional[Clock] = None) -> List[dict]:
        """Public user directory with departments and an availability flag"""
        today = (clock or system_clock).now().date()
        users = await self.list_users()

        result = await self.db.execute(
            select(AvailabilityRule.user_id)
            .where(or_(AvailabilityRule.valid_until.is_(None), AvailabilityRule.valid_until >= today))
            .distinct()
        )
        available_ids = set(result.scalars().all())

        return [
            {
                "id": user.id,
                "display_name": user.display_name,
                "email": user.email if user.show_email else None,
                "position": user.position,
                "profile_image": user.profile_image,
                "show_email": user.show_email,
                "departments": [
                    {"id": d.id, "name": d.name}
                    for d in sorted(user.departments, key=lambda d: d.name)
                ],
                "has_availability": user.id in available_ids,
            }
            for user in users
        ]

    async def create_user(self, user_data: UserCreate) -> User:
        """Create a user and run auto-provisioning for it"""
        try:
            if await self.get_user_by_username(user_data.username):
                raise ConflictError(f"Username {user_data.username} is already taken")

            values = user_data.dict(exclude={"password"})
            user = User(**values)
            if user_data.password:
                user.password_hash = hash_password(user_data.password)
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            user_id = user.id
            logger.info(f"User {user_id} ({user.username}) created")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create user: {e}")
            raise

        await self.on_user_created(user_id)
        return await self.get_user(user_id)

    async def on_user_created(self, user_id: int) -> None:
        """Apply every user-targeted apply-to-future batch config; failures never undo the user"""
        try:
            await BatchService(self.db).apply_to_new_user(user_id)
        except Exception as e:
            await self.db.rollback()
            logger.exception(f"Auto-provisioning for user {user_id} failed: {e}")

    async def update_user(self, user_id: int, user_data: UserUpdate) -> User:
        try:
            user = await self.get_user_by_id(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found")

            update_data = user_data.dict(exclude_unset=True)
            password = update_data.pop("password", None)
            for field, value in update_data.items():
                if value is None and field in ("display_name", "show_email", "is_admin"):
                    continue
                setattr(user, field, value)
            if password:
                user.password_hash = hash_password(password)

            await self.db.commit()
            logger.info(f"User {user_id} updated")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update user {user_id}: {e}")
            raise
        return await self.get_user(user_id)

    async def delete_user(self, user_id: int) -> bool:
        """Remove the user with its rules, topics, time off and memberships; bookings keep their history"""
        try:
            user = await self.get_user_by_id(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found")

            await self.db.execute(
                update(Booking)
                .where(Booking.topic_id.in_(select(Topic.id).where(Topic.user_id == user_id)))
                .values(topic_id=None)
            )
            await self.db.execute(
                update(Booking).where(Booking.provider_id == user_id).values(provider_id=None)
            )
            await self.db.execute(delete(AvailabilityRule).where(AvailabilityRule.user_id == user_id))
            await self.db.execute(delete(Topic).where(Topic.user_id == user_id))
            await self.db.execute(delete(TimeOff).where(TimeOff.user_id == user_id))
            await self.db.execute(delete(user_departments).where(user_departments.c.user_id == user_id))
            await self.db.execute(delete(User).where(User.id == user_id))
            await self.db.commit()
            logger.info(f"User {user_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete user {user_id}: {e}")
            raise

    async def admin_exists(self) -> bool:
        result = await self.db.execute(select(exists().where(User.is_admin.is_(True))))
        return bool(result.scalar())

    async def setup_admin(self, setup_data: SetupRequest) -> User:
        """First-run setup, only allowed while no administrator exists"""
        if await self.admin_exists():
            raise ForbiddenError("Setup has already been completed")
        return await self.create_user(UserCreate(
            username=setup_data.username,
            display_name=setup_data.display_name,
            email=setup_data.email,
            password=setup_data.password,
            is_admin=True,
        ))

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        user = await self.get_user_by_username(username)
        if not user or user.auth_method != "local":
            return None
        if not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {username}")
            return None
        return user
