"""
Сервис для записи аудит-логов.
"""
import json
from typing import Any
from sqlalchemy.ext.asyncio import AsyncSession
from ..models.audit_log import AuditLog, AuditAction
from ..models.employee import Employee
from ..models.roster_planning import RosterPlanningLock, RosterPlanningRun


class AuditService:
    """Сервис аудита"""

    @staticmethod
    async def log(
        db: AsyncSession,
        action: AuditAction,
        actor: Employee | None = None,
        entity_type: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """
        Записать событие в аудит-лог.

        Args:
            db: Сессия БД
            action: Тип действия
            actor: Сотрудник, выполнивший действие (если есть)
            entity_type: Тип сущности (planning_lock, planning_run)
            entity_id: ID сущности
            details: Дополнительные детали (будут сериализованы в JSON)
        """
        log_entry = AuditLog(
            actor_id=actor.id if actor else None,
            actor_name=actor.display_name if actor else None,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=json.dumps(details, ensure_ascii=False) if details else None,
        )

        db.add(log_entry)
        # Не делаем flush/commit - это ответственность вызывающего кода

        return log_entry

    @staticmethod
    async def log_lock_saved(
        db: AsyncSession,
        actor: Employee,
        lock: RosterPlanningLock,
    ) -> AuditLog:
        """Записать создание или изменение лока"""
        return await AuditService.log(
            db=db,
            action=AuditAction.PLANNING_LOCK_SAVED,
            actor=actor,
            entity_type="planning_lock",
            entity_id=lock.id,
            details={
                "year": lock.year,
                "month": lock.month,
                "slot_id": lock.slot_id,
                "employee_id": lock.employee_id,
            },
        )

    @staticmethod
    async def log_lock_deleted(
        db: AsyncSession,
        actor: Employee,
        year: int,
        month: int,
        slot_id: str,
    ) -> AuditLog:
        """Записать удаление лока"""
        return await AuditService.log(
            db=db,
            action=AuditAction.PLANNING_LOCK_DELETED,
            actor=actor,
            entity_type="planning_lock",
            details={"year": year, "month": month, "slot_id": slot_id},
        )

    @staticmethod
    async def log_run_created(
        db: AsyncSession,
        actor: Employee,
        run: RosterPlanningRun,
    ) -> AuditLog:
        """Записать сохранённый запуск планирования"""
        summary = run.output_json.get("summary", {})
        return await AuditService.log(
            db=db,
            action=AuditAction.PLANNING_RUN_CREATED,
            actor=actor,
            entity_type="planning_run",
            entity_id=run.id,
            details={
                "year": run.year,
                "month": run.month,
                "seed": run.seed,
                "engine": run.engine,
                "input_hash": run.input_hash,
                "coverage": summary.get("coverage"),
            },
        )
