from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update, insert, and_
from sqlalchemy.orm import selectinload
from typing import Optional, List, Set, Iterable
from ..core.exceptions import NotFoundError
from ..models.availability import AvailabilityRule
from ..models.batch_config import BatchConfig, RuleType, TargetType
from ..models.booking import Booking
from ..models.department import Department, user_departments, batch_departments
from ..models.topic import Topic
from ..models.user import User
from ..schemas.batch_config import (
    BatchConfigCreate, BatchConfigUpdate,
    ConfigTemplate, parse_config_data, template_to_json
)
import logging

logger = logging.getLogger(__name__)

OWNED_MODELS = {
    RuleType.TOPIC: Topic,
    RuleType.AVAILABILITY: AvailabilityRule,
}


def owned_model(rule_type: str):
    """Topic or AvailabilityRule, depending on what the batch config provisions"""
    return OWNED_MODELS[RuleType(rule_type)]


def row_values(template: ConfigTemplate) -> dict:
    return template.model_dump()


class BatchService:
    """Rule templates and the rows they own"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_batch_by_id(self, batch_id: int, for_update: bool = False) -> Optional[BatchConfig]:
        try:
            query = select(BatchConfig).where(BatchConfig.id == batch_id)
            if for_update:
                query = query.with_for_update()
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to load batch config {batch_id}: {e}")
            raise

    async def get_batch(self, batch_id: int) -> BatchConfig:
        """Batch config with departments and owner user ids attached"""
        result = await self.db.execute(
            select(BatchConfig)
            .options(selectinload(BatchConfig.departments))
            .where(BatchConfig.id == batch_id)
            .execution_options(populate_existing=True)
        )
        batch = result.scalar_one_or_none()
        if not batch:
            raise NotFoundError(f"Batch config {batch_id} not found")
        setattr(batch, "user_ids", await self._get_listed_user_ids(batch))
        return batch

    async def list_batches(self) -> List[BatchConfig]:
        result = await self.db.execute(
            select(BatchConfig)
            .options(selectinload(BatchConfig.departments))
            .order_by(BatchConfig.created_at.desc(), BatchConfig.id.desc())
        )
        batches = result.scalars().all()
        for batch in batches:
            setattr(batch, "user_ids", await self._get_listed_user_ids(batch))
        return batches

    async def create_batch(self, batch_data: BatchConfigCreate) -> BatchConfig:
        try:
            template = parse_config_data(batch_data.rule_type, batch_data.config_data)
            batch = BatchConfig(
                name=batch_data.name,
                rule_type=RuleType(batch_data.rule_type).value,
                target_type=TargetType(batch_data.target_type).value,
                config_data=template_to_json(template),
                apply_to_future=batch_data.apply_to_future,
            )
            self.db.add(batch)
            await self.db.flush()

            if batch.target_type == TargetType.DEPARTMENT.value:
                await self._set_departments(batch.id, batch_data.department_ids)
                target_user_ids = await self.get_department_member_ids(batch_data.department_ids)
            else:
                target_user_ids = await self._check_users_exist(batch_data.user_ids)

            await self.create_owned_rows(batch, target_user_ids)
            await self.db.commit()

            logger.info(
                f"Batch config {batch.id} ({batch.name}) created, "
                f"{len(target_user_ids)} {batch.rule_type} rows provisioned"
            )
            return await self.get_batch(batch.id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create batch config: {e}")
            raise

    async def update_batch(self, batch_id: int, batch_data: BatchConfigUpdate) -> BatchConfig:
        try:
            batch = await self.get_batch_by_id(batch_id, for_update=True)
            if not batch:
                raise NotFoundError(f"Batch config {batch_id} not found")

            if batch_data.name is not None:
                batch.name = batch_data.name
            if batch_data.apply_to_future is not None:
                batch.apply_to_future = batch_data.apply_to_future
            if batch_data.target_type is not None:
                batch.target_type = TargetType(batch_data.target_type).value

            model = owned_model(batch.rule_type)

            # Content update of every owned row, ownership unchanged
            if batch_data.config_data is not None:
                template = parse_config_data(batch.rule_type, batch_data.config_data)
                batch.config_data = template_to_json(template)
                await self.db.execute(
                    update(model)
                    .where(model.batch_config_id == batch.id)
                    .values(**row_values(template))
                )

            if batch.target_type == TargetType.DEPARTMENT.value:
                if batch_data.department_ids is not None:
                    await self._set_departments(batch.id, batch_data.department_ids)
                target_user_ids = await self.get_department_member_ids(await self._get_department_ids(batch.id))
            else:
                await self._set_departments(batch.id, [])
                if batch_data.user_ids is not None:
                    target_user_ids = await self._check_users_exist(batch_data.user_ids)
                else:
                    target_user_ids = await self.get_owner_user_ids(batch)

            added, removed = await self._reconcile(batch, target_user_ids)
            await self.db.commit()

            logger.info(f"Batch config {batch_id} updated: +{len(added)} / -{len(removed)} owned rows")
            return await self.get_batch(batch_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update batch config {batch_id}: {e}")
            raise

    async def delete_batch(self, batch_id: int) -> bool:
        try:
            batch = await self.get_batch_by_id(batch_id, for_update=True)
            if not batch:
                raise NotFoundError(f"Batch config {batch_id} not found")

            await self.destroy_owned_rows(batch)
            await self.db.execute(
                delete(batch_departments).where(batch_departments.c.batch_config_id == batch_id)
            )
            await self.db.execute(delete(BatchConfig).where(BatchConfig.id == batch_id))
            await self.db.commit()

            logger.info(f"Batch config {batch_id} deleted with its owned rows")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete batch config {batch_id}: {e}")
            raise

    async def reconcile_batch(self, batch_id: int) -> BatchConfig:
        """Re-diff owned rows against the resolved target set without changing the config"""
        try:
            batch = await self.get_batch_by_id(batch_id, for_update=True)
            if not batch:
                raise NotFoundError(f"Batch config {batch_id} not found")

            if batch.target_type == TargetType.DEPARTMENT.value:
                target_user_ids = await self.get_department_member_ids(await self._get_department_ids(batch.id))
            else:
                target_user_ids = await self.get_owner_user_ids(batch)

            added, removed = await self._reconcile(batch, target_user_ids)
            await self.db.commit()
            logger.info(f"Batch config {batch_id} reconciled: +{len(added)} / -{len(removed)} owned rows")
            return await self.get_batch(batch_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to reconcile batch config {batch_id}: {e}")
            raise

    async def apply_to_new_user(self, user_id: int) -> int:
        """Provision every user-targeted apply-to-future config for a freshly created user"""
        result = await self.db.execute(
            select(BatchConfig).where(
                and_(
                    BatchConfig.apply_to_future.is_(True),
                    BatchConfig.target_type == TargetType.USER.value,
                )
            )
        )
        batches = result.scalars().all()
        for batch in batches:
            await self.create_owned_rows(batch, {user_id})
        if batches:
            await self.db.commit()
            logger.info(f"Applied {len(batches)} batch configs to new user {user_id}")
        return len(batches)

    async def create_owned_rows(self, batch: BatchConfig, user_ids: Iterable[int]) -> None:
        user_ids = sorted(set(user_ids))
        if not user_ids:
            return
        model = owned_model(batch.rule_type)
        values = row_values(parse_config_data(batch.rule_type, batch.config_data))
        self.db.add_all([
            model(**values, user_id=user_id, batch_config_id=batch.id)
            for user_id in user_ids
        ])
        await self.db.flush()

    async def destroy_owned_rows(self, batch: BatchConfig, user_ids: Optional[Iterable[int]] = None) -> None:
        """Delete rows owned by the batch, optionally limited to some users"""
        model = owned_model(batch.rule_type)
        condition = model.batch_config_id == batch.id
        if user_ids is not None:
            user_ids = list(user_ids)
            if not user_ids:
                return
            condition = and_(condition, model.user_id.in_(user_ids))

        if model is Topic:
            # Bookings keep their history without the topic
            await self.db.execute(
                update(Booking)
                .where(Booking.topic_id.in_(select(Topic.id).where(condition)))
                .values(topic_id=None)
            )
        await self.db.execute(delete(model).where(condition))

    async def get_owner_user_ids(self, batch: BatchConfig) -> Set[int]:
        model = owned_model(batch.rule_type)
        result = await self.db.execute(
            select(model.user_id).where(model.batch_config_id == batch.id)
        )
        return set(result.scalars().all())

    async def get_department_member_ids(self, department_ids: Iterable[int]) -> Set[int]:
        department_ids = list(department_ids)
        if not department_ids:
            return set()
        result = await self.db.execute(
            select(user_departments.c.user_id).where(user_departments.c.department_id.in_(department_ids))
        )
        return set(result.scalars().all())

    async def _reconcile(self, batch: BatchConfig, target_user_ids: Set[int]):
        current_user_ids = await self.get_owner_user_ids(batch)
        added = set(target_user_ids) - current_user_ids
        removed = current_user_ids - set(target_user_ids)

        await self.destroy_owned_rows(batch, removed)
        await self.create_owned_rows(batch, added)
        return added, removed

    async def _get_listed_user_ids(self, batch: BatchConfig) -> List[int]:
        if batch.target_type != TargetType.USER.value:
            return []
        return sorted(await self.get_owner_user_ids(batch))

    async def _get_department_ids(self, batch_id: int) -> List[int]:
        result = await self.db.execute(
            select(batch_departments.c.department_id).where(batch_departments.c.batch_config_id == batch_id)
        )
        return list(result.scalars().all())

    async def _set_departments(self, batch_id: int, department_ids: Iterable[int]) -> None:
        department_ids = sorted(set(department_ids))
        if department_ids:
            result = await self.db.execute(select(Department.id).where(Department.id.in_(department_ids)))
            missing = set(department_ids) - set(result.scalars().all())
            if missing:
                raise NotFoundError(f"Departments not found: {sorted(missing)}")

        await self.db.execute(
            delete(batch_departments).where(batch_departments.c.batch_config_id == batch_id)
        )
        if department_ids:
            await self.db.execute(
                insert(batch_departments),
                [{"batch_config_id": batch_id, "department_id": department_id} for department_id in department_ids]
            )

    async def _check_users_exist(self, user_ids: Iterable[int]) -> Set[int]:
        user_ids = set(user_ids)
        if not user_ids:
            return set()
        result = await self.db.execute(select(User.id).where(User.id.in_(user_ids)))
        missing = user_ids - set(result.scalars().all())
        if missing:
            raise NotFoundError(f"Users not found: {sorted(missing)}")
        return user_ids
