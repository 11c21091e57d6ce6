from sqlalchemy import String, Text, Integer, ForeignKey, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, TimestampMixin
import uuid
from datetime import date
from enum import Enum


class PlannedAbsenceStatus(str, Enum):
    """
    Статус запланированного отсутствия.
    На планирование дежурств статус не влияет: любое отсутствие
    в периоде блокирует даты.
    """
    PLANNED = "planned"
    APPROVED = "approved"
    REJECTED = "rejected"


class Absence(Base, TimestampMixin):
    """Фактическое отсутствие (отпуск, больничный, обучение)"""
    __tablename__ = "absences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id: Mapped[str] = mapped_column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    employee = relationship("Employee", back_populates="absences")


class PlannedAbsence(Base, TimestampMixin):
    """Отсутствие, заявленное на конкретный плановый месяц"""
    __tablename__ = "planned_absences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id: Mapped[str] = mapped_column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[PlannedAbsenceStatus] = mapped_column(
        SQLEnum(PlannedAbsenceStatus),
        default=PlannedAbsenceStatus.PLANNED,
        nullable=False
    )

    # Relationships
    employee = relationship("Employee", back_populates="planned_absences")
