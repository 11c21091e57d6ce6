import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select, and_, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from ...exceptions import PersistenceError
from ...models import Employee, Absence, PlannedAbsence, ShiftWish, ShiftWishStatus, RosterPlanningRun
from ...models.base import utcnow
from ...schemas.planning import PlanningInputV1, PlanningOutputV1, ViolationCode, dump_document
from ..audit_service import AuditService
from .engine import AssignmentEngine, build_planning_output
from .input_builder import PlanningInputBuilder, month_bounds
from .locks import LockStore
from .runs import RunStore, canonical_input_hash

logger = logging.getLogger(__name__)


SEED_MIN = -(2 ** 63)
SEED_MAX = 2 ** 63 - 1
SEED_MODULUS = 2 ** 32


def resolve_seed(value: Any, clock: Callable[[], datetime] = utcnow) -> int:
    """
    Seed из запроса: конечное число или числовая строка.
    Иначе - текущее время в epoch-миллисекундах, чтобы запуск
    всё равно можно было воспроизвести по сохранённому seed.

    Число, не помещающееся в float, считается бесконечным.
    Seed вне диапазона BIGINT приводится по модулю 2^32: генератор
    всё равно работает по этому модулю, результат движка не меняется.
    """
    number = None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str) and value.strip():
        number = value.strip()
    if number is not None:
        try:
            number = float(number)
        except (ValueError, OverflowError):
            number = None
    if number is not None and math.isfinite(number):
        seed = math.floor(number)
        if not SEED_MIN <= seed <= SEED_MAX:
            seed %= SEED_MODULUS
        return seed
    now = clock()
    return int((now - datetime(1970, 1, 1)).total_seconds() * 1000)


@dataclass
class PlanningComputation:
    """Результат расчёта: вход, выход и фактически использованный seed"""
    planning_input: PlanningInputV1
    output: PlanningOutputV1
    seed: int


class PlanningService:
    """
    Оркестрация планирования дежурств.

    Весь I/O (сотрудники, отсутствия, пожелания, локи, запуски) выполняется
    здесь до вызова движка; сам движок синхронный и чистый.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
        engine: AssignmentEngine | None = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock
        self.engine = engine or AssignmentEngine()
        self.builder = PlanningInputBuilder(settings)
        self.locks = LockStore(db, clock)
        self.runs = RunStore(db, clock)

    # ================= PUBLIC API =================

    async def build_input(self, year: int, month: int) -> PlanningInputV1:
        """Собрать входной документ периода из текущих данных"""
        period_start, period_end = month_bounds(year, month)
        try:
            employees = await self._scalars(
                select(Employee).order_by(Employee.last_name, Employee.first_name, Employee.id)
            )
            absences = await self._scalars(
                select(Absence)
                .where(
                    and_(
                        Absence.start_date <= period_end,
                        Absence.end_date >= period_start
                    )
                )
                .order_by(Absence.start_date, Absence.id)
            )
            planned_absences = await self._scalars(
                select(PlannedAbsence)
                .where(
                    and_(
                        PlannedAbsence.year == year,
                        PlannedAbsence.month == month
                    )
                )
                .order_by(PlannedAbsence.start_date, PlannedAbsence.id)
            )
            # При нескольких пожеланиях на месяц побеждает последнее изменённое
            shift_wishes = await self._scalars(
                select(ShiftWish)
                .where(
                    and_(
                        ShiftWish.year == year,
                        ShiftWish.month == month
                    )
                )
                .order_by(ShiftWish.updated_at, ShiftWish.id)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load planning data for {year}-{month:02d}") from e

        return self.builder.build(
            year,
            month,
            employees=employees,
            absences=absences,
            planned_absences=planned_absences,
            shift_wishes=shift_wishes,
            created_at=self.clock(),
        )

    async def compute(self, year: int, month: int, seed: Any = None) -> PlanningComputation:
        """Вход + снимок локов -> движок -> проверенный выходной документ"""
        planning_input = await self.build_input(year, month)
        locks = await self.locks.snapshot(year, month)
        run_seed = resolve_seed(seed, self.clock)

        result = self.engine.solve(planning_input, locks, run_seed)
        for violation in result.violations:
            if violation.code == ViolationCode.LOCK_INVALID_EMPLOYEE:
                logger.warning(
                    "Roster %s-%02d: lock on %s references unknown employee %s",
                    year, month, violation.slot_id, violation.employee_id
                )

        output = build_planning_output(
            planning_input,
            result,
            seed=run_seed,
            engine_id=self.settings.planning_engine,
            created_at=self.clock(),
        )
        return PlanningComputation(planning_input, output, run_seed)

    async def preview(self, year: int, month: int, seed: Any = None) -> PlanningOutputV1:
        """Рассчитать план без сохранения"""
        computation = await self.compute(year, month, seed)
        return computation.output

    async def run(
        self,
        year: int,
        month: int,
        actor: Employee,
        seed: Any = None,
    ) -> tuple[PlanningOutputV1, RosterPlanningRun]:
        """Рассчитать план и сохранить запуск"""
        computation = await self.compute(year, month, seed)
        run = await self.runs.save_run(
            year=year,
            month=month,
            input_json=dump_document(computation.planning_input),
            output_json=dump_document(computation.output),
            engine=self.settings.planning_engine,
            seed=computation.seed,
            user_id=actor.id,
        )
        await AuditService.log_run_created(self.db, actor, run)

        coverage = computation.output.summary.coverage
        logger.info(
            "Roster %s-%02d run %s saved by %s: %s/%s filled (seed=%s)",
            year, month, run.id, actor.id, coverage.filled, coverage.required, computation.seed
        )
        return computation.output, run

    async def get_state(self, year: int, month: int) -> dict:
        """
        Состояние планирования периода:
        сколько пожеланий подано, когда был последний запуск и устарел ли он.
        """
        planning_input = await self.build_input(year, month)
        try:
            result = await self.db.execute(
                select(func.count(ShiftWish.id)).where(
                    and_(
                        ShiftWish.year == year,
                        ShiftWish.month == month,
                        ShiftWish.status == ShiftWishStatus.SUBMITTED
                    )
                )
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count shift wishes for {year}-{month:02d}") from e
        submitted_count = result.scalar_one()

        # Все, кто берёт дежурства, включая неактивных
        try:
            result = await self.db.execute(
                select(func.count(Employee.id)).where(Employee.takes_shifts.is_(True))
            )
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to count shift-taking employees") from e
        total_employees = result.scalar_one()

        latest = await self.runs.get_latest_run(year, month)
        is_dirty = await self.runs.is_dirty(year, month, latest)
        input_changed = (
            latest is None
            or latest.input_hash != canonical_input_hash(dump_document(planning_input))
        )

        return {
            "submitted_count": submitted_count,
            "missing_count": max(0, total_employees - submitted_count),
            "last_run_at": latest.created_at if latest else None,
            "is_dirty": is_dirty,
            "input_changed": input_changed,
        }

    # ================= PRIVATE / HELPERS =================

    async def _scalars(self, query) -> list:
        result = await self.db.execute(query)
        return list(result.scalars().all())
