"""
Локи и запуски планирования дежурств.

Лок - ручное закрепление слота:
1. employee_id задан - слот всегда достаётся этому сотруднику
2. employee_id = NULL - слот намеренно остаётся пустым
3. Нет строки - решает алгоритм

Запуск (run) - неизменяемая запись о каждом выполнении движка:
входной и выходной документы, хэш входа, seed и идентификатор движка.
"""

from sqlalchemy import String, Integer, BigInteger, DateTime, JSON, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, utcnow
import uuid
from datetime import datetime


class RosterPlanningLock(Base):
    """Ручной лок слота на период (year, month)"""

    __tablename__ = "roster_planning_locks"
    __table_args__ = (
        UniqueConstraint("year", "month", "slot_id", name="uq_roster_planning_locks_period_slot"),
        Index("ix_roster_planning_locks_year_month", "year", "month"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Без внешнего ключа: лок на удалённого сотрудника должен дойти
    # до движка и стать нарушением LOCK_INVALID_EMPLOYEE
    employee_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    created_by_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


class RosterPlanningRun(Base):
    """Запуск планирования (append-only)"""

    __tablename__ = "roster_planning_runs"
    __table_args__ = (
        Index("ix_roster_planning_runs_year_month", "year", "month"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    # SHA-256 канонического входного документа
    input_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    input_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    output_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    engine: Mapped[str] = mapped_column(String(50), nullable=False)
    # Epoch-миллисекунды не помещаются в INTEGER
    seed: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    created_by_id: Mapped[str] = mapped_column(String(36), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
