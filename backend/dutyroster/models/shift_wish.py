from sqlalchemy import String, Text, Integer, ForeignKey, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, TimestampMixin
import uuid
from datetime import datetime
from enum import Enum


class ShiftWishStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


class ShiftWish(Base, TimestampMixin):
    """
    Пожелания сотрудника к дежурствам на плановый месяц.

    JSON-поля заполняются фронтендом и не валидируются при записи,
    поэтому при сборке входных данных планирования они нормализуются.
    """
    __tablename__ = "shift_wishes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    employee_id: Mapped[str] = mapped_column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ShiftWishStatus] = mapped_column(
        SQLEnum(ShiftWishStatus),
        default=ShiftWishStatus.DRAFT,
        nullable=False
    )

    # Дни месяца (числа) или ISO-даты
    preferred_shift_days: Mapped[list | None] = mapped_column(JSON, nullable=True)
    avoid_shift_days: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # ID сервисных ролей (gyn, kreiszimmer, ...)
    preferred_service_types: Mapped[list | None] = mapped_column(JSON, nullable=True)
    avoid_service_types: Mapped[list | None] = mapped_column(JSON, nullable=True)

    # 0 = воскресенье ... 6 = суббота
    avoid_weekdays: Mapped[list | None] = mapped_column(JSON, nullable=True)

    max_shifts_per_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_shifts_per_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_weekend_shifts: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Relationships
    employee = relationship("Employee", back_populates="shift_wishes")
