import hashlib
import json
from datetime import datetime
from typing import Callable

from sqlalchemy import select, and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...exceptions import PersistenceError
from ...models import RosterPlanningLock, RosterPlanningRun
from ...models.base import utcnow


def canonical_input_hash(input_json: dict) -> str:
    """
    SHA-256 канонического входного документа.
    meta.createdAt не участвует: пересборка того же периода даёт тот же хэш.
    """
    payload = dict(input_json)
    meta = dict(payload.get("meta") or {})
    meta.pop("createdAt", None)
    payload["meta"] = meta
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class RunStore:
    """Журнал запусков планирования (только добавление)"""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    async def save_run(
        self,
        year: int,
        month: int,
        input_json: dict,
        output_json: dict,
        engine: str,
        seed: int | None,
        user_id: str,
    ) -> RosterPlanningRun:
        run = RosterPlanningRun(
            year=year,
            month=month,
            input_hash=canonical_input_hash(input_json),
            input_json=input_json,
            output_json=output_json,
            engine=engine,
            seed=seed,
            created_by_id=user_id,
            created_at=self.clock(),
        )
        try:
            self.db.add(run)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to persist roster planning run") from e
        return run

    async def list_runs(self, year: int, month: int, limit: int = 10) -> list[RosterPlanningRun]:
        try:
            result = await self.db.execute(
                select(RosterPlanningRun)
                .where(
                    and_(
                        RosterPlanningRun.year == year,
                        RosterPlanningRun.month == month
                    )
                )
                .order_by(RosterPlanningRun.created_at.desc(), RosterPlanningRun.id.desc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load runs for {year}-{month:02d}") from e
        return list(result.scalars().all())

    async def get_latest_run(self, year: int, month: int) -> RosterPlanningRun | None:
        runs = await self.list_runs(year, month, limit=1)
        return runs[0] if runs else None

    async def is_dirty(self, year: int, month: int, latest: RosterPlanningRun | None = None) -> bool:
        """
        Последний запуск устарел, если лок периода изменён после него.
        Без запусков период всегда "грязный".
        """
        if latest is None:
            latest = await self.get_latest_run(year, month)
        if latest is None:
            return True
        try:
            result = await self.db.execute(
                select(func.count(RosterPlanningLock.id)).where(
                    and_(
                        RosterPlanningLock.year == year,
                        RosterPlanningLock.month == month,
                        RosterPlanningLock.updated_at > latest.created_at
                    )
                )
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to check locks for {year}-{month:02d}") from e
        return result.scalar_one() > 0
