"""
API endpoints для планирования дежурств на месяц.

GET  /{year}/{month}/input           - входной документ
GET  /{year}/{month}/state           - состояние планирования
GET  /{year}/{month}/locks           - локи периода
PUT  /{year}/{month}/locks           - создать/изменить лок
DELETE /{year}/{month}/locks/{slot}  - снять лок
POST /{year}/{month}/preview         - расчёт без сохранения
POST /{year}/{month}/run             - расчёт с сохранением запуска
GET  /{year}/{month}/runs/latest     - последний сохранённый запуск
"""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Path, Response
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from ...database import get_db
from ...schemas.planning import dump_document
from ...services.audit_service import AuditService
from ...services.planning.locks import LockStore
from ...services.planning.runs import RunStore
from ...services.planning.service import PlanningService
from ..deps import PlannerEmployee, get_app_settings


router = APIRouter()

Year = Annotated[int, Path(ge=1, le=9999)]
Month = Annotated[int, Path(ge=1, le=12)]


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class LockUpsertRequest(CamelModel):
    slot_id: str
    employee_id: str | int | None


class LockResponse(CamelModel):
    id: str
    year: int
    month: int
    slot_id: str
    employee_id: str | None
    created_by_id: str
    created_at: datetime
    updated_at: datetime


class PlanningRequest(CamelModel):
    # Число или числовая строка; иначе seed = текущее время
    seed: Any = None


class PlanningStateResponse(CamelModel):
    submitted_count: int
    missing_count: int
    last_run_at: datetime | None
    is_dirty: bool
    input_changed: bool


class PlanningRunResponse(CamelModel):
    id: str
    year: int
    month: int
    input_hash: str
    engine: str
    seed: int | None
    created_by_id: str
    created_at: datetime
    summary: dict


def get_planning_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> PlanningService:
    return PlanningService(db, settings)


@router.get("/{year}/{month}/input")
async def get_planning_input(
    year: Year,
    month: Month,
    _: PlannerEmployee,
    service: PlanningService = Depends(get_planning_service),
):
    """Собрать входной документ планирования (v1) для периода."""
    planning_input = await service.build_input(year, month)
    return dump_document(planning_input)


@router.get("/{year}/{month}/state", response_model=PlanningStateResponse)
async def get_planning_state(
    year: Year,
    month: Month,
    _: PlannerEmployee,
    service: PlanningService = Depends(get_planning_service),
):
    """
    Состояние планирования.

    - submittedCount / missingCount: поданные и недостающие пожелания
    - lastRunAt: время последнего сохранённого запуска
    - isDirty: лок изменён после последнего запуска (или запусков нет)
    - inputChanged: входные данные отличаются от последнего запуска
    """
    state = await service.get_state(year, month)
    return PlanningStateResponse(**state)


@router.get("/{year}/{month}/locks", response_model=list[LockResponse])
async def list_planning_locks(
    year: Year,
    month: Month,
    _: PlannerEmployee,
    db: AsyncSession = Depends(get_db),
):
    """Получить все локи периода (по slotId)."""
    return await LockStore(db).list_locks(year, month)


@router.put("/{year}/{month}/locks", response_model=LockResponse)
async def upsert_planning_lock(
    year: Year,
    month: Month,
    request: LockUpsertRequest,
    planner: PlannerEmployee,
    db: AsyncSession = Depends(get_db),
):
    """
    Создать или изменить лок слота.

    employeeId = null закрепляет слот пустым.
    """
    slot_id = request.slot_id.strip()
    if not slot_id:
        raise HTTPException(status_code=400, detail="slotId is required")
    if not slot_id.startswith(f"{year:04d}-{month:02d}-"):
        raise HTTPException(status_code=400, detail="Slot does not belong to the period")

    employee_id = request.employee_id
    if employee_id is not None:
        employee_id = str(employee_id).strip()
        if not employee_id:
            raise HTTPException(status_code=400, detail="Invalid employeeId")

    lock = await LockStore(db).upsert(year, month, slot_id, employee_id, planner.id)
    await AuditService.log_lock_saved(db, planner, lock)
    return lock


@router.delete("/{year}/{month}/locks/{slot_id}", status_code=204)
async def delete_planning_lock(
    year: Year,
    month: Month,
    slot_id: str,
    planner: PlannerEmployee,
    db: AsyncSession = Depends(get_db),
):
    """Снять лок: слот снова распределяет алгоритм."""
    deleted = await LockStore(db).delete(year, month, slot_id)
    if deleted:
        await AuditService.log_lock_deleted(db, planner, year, month, slot_id)
    return Response(status_code=204)


@router.post("/{year}/{month}/preview")
async def preview_planning(
    year: Year,
    month: Month,
    _: PlannerEmployee,
    request: PlanningRequest | None = None,
    service: PlanningService = Depends(get_planning_service),
):
    """Рассчитать план без записи в БД."""
    seed = request.seed if request else None
    output = await service.preview(year, month, seed)
    return dump_document(output)


@router.post("/{year}/{month}/run")
async def run_planning(
    year: Year,
    month: Month,
    planner: PlannerEmployee,
    request: PlanningRequest | None = None,
    service: PlanningService = Depends(get_planning_service),
):
    """
    Рассчитать план и сохранить запуск.

    Сохраняются вход, выход, хэш входа, seed и идентификатор движка.
    """
    seed = request.seed if request else None
    output, _ = await service.run(year, month, planner, seed)
    return dump_document(output)


@router.get("/{year}/{month}/runs/latest", response_model=PlanningRunResponse)
async def get_latest_planning_run(
    year: Year,
    month: Month,
    _: PlannerEmployee,
    db: AsyncSession = Depends(get_db),
):
    """Метаданные последнего сохранённого запуска."""
    run = await RunStore(db).get_latest_run(year, month)
    if not run:
        raise HTTPException(status_code=404, detail="No planning runs for this period")
    return PlanningRunResponse(
        id=run.id,
        year=run.year,
        month=run.month,
        input_hash=run.input_hash,
        engine=run.engine,
        seed=run.seed,
        created_by_id=run.created_by_id,
        created_at=run.created_at,
        summary=run.output_json.get("summary", {}),
    )
