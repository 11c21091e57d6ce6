from datetime import datetime
from types import MappingProxyType
from typing import Callable, Mapping

from sqlalchemy import select, and_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...exceptions import PersistenceError
from ...models import RosterPlanningLock
from ...models.base import utcnow
from .types import LockSnapshot


class LockStore:
    """
    Хранилище ручных локов слотов.
    Ключ - (year, month, slot_id); отсутствие строки значит "решает алгоритм".
    """

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def list_locks(self, year: int, month: int) -> list[RosterPlanningLock]:
        try:
            result = await self.db.execute(
                select(RosterPlanningLock)
                .where(
                    and_(
                        RosterPlanningLock.year == year,
                        RosterPlanningLock.month == month
                    )
                )
                .order_by(RosterPlanningLock.slot_id)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load locks for {year}-{month:02d}") from e
        return list(result.scalars().all())

    async def get_lock(self, year: int, month: int, slot_id: str) -> RosterPlanningLock | None:
        try:
            result = await self.db.execute(
                select(RosterPlanningLock).where(
                    and_(
                        RosterPlanningLock.year == year,
                        RosterPlanningLock.month == month,
                        RosterPlanningLock.slot_id == slot_id
                    )
                )
                # upsert пишет мимо ORM: объект в сессии может быть устаревшим
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load lock {slot_id}") from e
        return result.scalar_one_or_none()

    async def upsert(
        self,
        year: int,
        month: int,
        slot_id: str,
        employee_id: str | None,
        user_id: str,
    ) -> RosterPlanningLock:
        """
        Создать лок или обновить существующий одним INSERT ... ON CONFLICT.
        При обновлении меняются только employee_id и updated_at.
        """
        now = self.clock()
        insert = sqlite.insert if self.db.get_bind().dialect.name == "sqlite" else postgresql.insert
        statement = insert(RosterPlanningLock).values(
            year=year,
            month=month,
            slot_id=slot_id,
            employee_id=employee_id,
            created_by_id=user_id,
            created_at=now,
            updated_at=now,
        )
        statement = statement.on_conflict_do_update(
            index_elements=["year", "month", "slot_id"],
            set_={
                "employee_id": statement.excluded.employee_id,
                "updated_at": statement.excluded.updated_at,
            },
        )
        try:
            await self.db.flush()
            await self.db.execute(statement)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save lock {slot_id}") from e
        return await self.get_lock(year, month, slot_id)

    async def delete(self, year: int, month: int, slot_id: str) -> bool:
        """Удалить лок. Возвращает False, если лока не было."""
        lock = await self.get_lock(year, month, slot_id)
        if not lock:
            return False
        try:
            await self.db.delete(lock)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to delete lock {slot_id}") from e
        return True

    async def snapshot(self, year: int, month: int) -> Mapping[str, LockSnapshot]:
        """Неизменяемый снимок локов периода для движка: slot_id -> лок"""
        locks = await self.list_locks(year, month)
        return MappingProxyType({
            lock.slot_id: LockSnapshot(
                slot_id=lock.slot_id,
                employee_id=lock.employee_id,
                updated_at=lock.updated_at,
            )
            for lock in locks
        })
