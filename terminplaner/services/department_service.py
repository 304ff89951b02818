from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, insert, and_, exists
from sqlalchemy.orm import selectinload
from typing import Optional, List, Set, Tuple, Iterable
from ..core.exceptions import NotFoundError
from ..models.batch_config import BatchConfig, TargetType
from ..models.department import Department, user_departments, batch_departments
from ..models.user import User
from ..schemas.department import DepartmentCreate, DepartmentUpdate
from .batch_service import BatchService
import logging

logger = logging.getLogger(__name__)


class DepartmentService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_department_by_id(self, department_id: int, for_update: bool = False) -> Optional[Department]:
        try:
            query = select(Department).where(Department.id == department_id)
            if for_update:
                query = query.with_for_update()
            result = await self.db.execute(query)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to load department {department_id}: {e}")
            raise

    async def get_department(self, department_id: int) -> Department:
        """Department with its members loaded"""
        result = await self.db.execute(
            select(Department)
            .options(selectinload(Department.users))
            .where(Department.id == department_id)
            .execution_options(populate_existing=True)
        )
        department = result.scalar_one_or_none()
        if not department:
            raise NotFoundError(f"Department {department_id} not found")
        return department

    async def list_departments(self, with_members: bool = True) -> List[Department]:
        query = select(Department).order_by(Department.name)
        if with_members:
            query = query.options(selectinload(Department.users))
        result = await self.db.execute(query)
        return result.scalars().all()

    async def create_department(self, department_data: DepartmentCreate) -> Department:
        try:
            department = Department(name=department_data.name, description=department_data.description)
            self.db.add(department)
            await self.db.commit()
            await self.db.refresh(department)
            department_id = department.id
            logger.info(f"Department {department_id} ({department.name}) created")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create department: {e}")
            raise

        if department_data.user_ids is not None:
            await self.on_membership_replaced(department_id, department_data.user_ids)
        return await self.get_department(department_id)

    async def update_department(self, department_id: int, department_data: DepartmentUpdate) -> Department:
        try:
            department = await self.get_department_by_id(department_id)
            if not department:
                raise NotFoundError(f"Department {department_id} not found")

            update_data = department_data.dict(exclude_unset=True, exclude={"user_ids"})
            for field, value in update_data.items():
                if field == "name" and not value:
                    continue
                setattr(department, field, value)

            await self.db.commit()
            logger.info(f"Department {department_id} updated")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to update department {department_id}: {e}")
            raise

        if department_data.user_ids is not None:
            await self.on_membership_replaced(department_id, department_data.user_ids)
        return await self.get_department(department_id)

    async def delete_department(self, department_id: int) -> bool:
        """Remove the department; rows already provisioned through it are kept"""
        try:
            department = await self.get_department_by_id(department_id)
            if not department:
                raise NotFoundError(f"Department {department_id} not found")

            await self.db.execute(delete(user_departments).where(user_departments.c.department_id == department_id))
            await self.db.execute(delete(batch_departments).where(batch_departments.c.department_id == department_id))
            await self.db.execute(delete(Department).where(Department.id == department_id))
            await self.db.commit()
            logger.info(f"Department {department_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete department {department_id}: {e}")
            raise

    async def get_member_ids(self, department_id: int) -> Set[int]:
        result = await self.db.execute(
            select(user_departments.c.user_id).where(user_departments.c.department_id == department_id)
        )
        return set(result.scalars().all())

    async def on_membership_replaced(self, department_id: int, new_member_ids: Iterable[int]) -> Tuple[Set[int], Set[int]]:
        """
        Replace the member list of a department and propagate the change.

        The membership write is committed on its own. Propagation to the
        department's apply-to-future batch configs runs afterwards and is
        best-effort: a failure is logged, and the next reconciliation of the
        affected batch config repairs the owned rows.

        Returns the (added, removed) user id sets.
        """
        new_member_ids = set(new_member_ids)
        try:
            department = await self.get_department_by_id(department_id, for_update=True)
            if not department:
                raise NotFoundError(f"Department {department_id} not found")

            if new_member_ids:
                result = await self.db.execute(select(User.id).where(User.id.in_(new_member_ids)))
                missing = new_member_ids - set(result.scalars().all())
                if missing:
                    raise NotFoundError(f"Users not found: {sorted(missing)}")

            old_member_ids = await self.get_member_ids(department_id)
            added = new_member_ids - old_member_ids
            removed = old_member_ids - new_member_ids

            if removed:
                await self.db.execute(
                    delete(user_departments).where(
                        and_(
                            user_departments.c.department_id == department_id,
                            user_departments.c.user_id.in_(removed),
                        )
                    )
                )
            if added:
                await self.db.execute(
                    insert(user_departments),
                    [{"user_id": user_id, "department_id": department_id} for user_id in sorted(added)]
                )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to replace members of department {department_id}: {e}")
            raise

        logger.info(f"Department {department_id} members replaced: +{len(added)} / -{len(removed)}")

        if added or removed:
            try:
                await self.sync_batches(department_id, added, removed)
            except Exception as e:
                await self.db.rollback()
                logger.exception(f"Batch sync for department {department_id} failed: {e}")

        return added, removed

    async def sync_batches(self, department_id: int, added: Set[int], removed: Set[int]) -> None:
        """Grant or revoke batch-owned rows for users who joined or left the department"""
        result = await self.db.execute(
            select(BatchConfig)
            .join(batch_departments, batch_departments.c.batch_config_id == BatchConfig.id)
            .where(
                and_(
                    batch_departments.c.department_id == department_id,
                    BatchConfig.target_type == TargetType.DEPARTMENT.value,
                    BatchConfig.apply_to_future.is_(True),
                )
            )
        )
        batches = result.scalars().all()
        if not batches:
            return

        batch_service = BatchService(self.db)
        for batch in batches:
            owners = await batch_service.get_owner_user_ids(batch)

            # A user already holding the row through another department keeps a single row
            to_create = added - owners
            await batch_service.create_owned_rows(batch, to_create)

            to_destroy = set()
            for user_id in removed:
                if not await self._is_still_covered(user_id, batch.id):
                    to_destroy.add(user_id)
            await batch_service.destroy_owned_rows(batch, to_destroy)

            logger.info(
                f"Department {department_id} sync for batch {batch.id} ({batch.name}): "
                f"+{len(to_create)} / -{len(to_destroy)}"
            )

        await self.db.commit()

    async def _is_still_covered(self, user_id: int, batch_id: int) -> bool:
        """True when the user belongs to any department still associated with the batch"""
        result = await self.db.execute(
            select(
                exists().where(
                    and_(
                        user_departments.c.user_id == user_id,
                        user_departments.c.department_id == batch_departments.c.department_id,
                        batch_departments.c.batch_config_id == batch_id,
                    )
                )
            )
        )
        return bool(result.scalar())
