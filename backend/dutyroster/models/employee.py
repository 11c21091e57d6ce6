from sqlalchemy import String, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .base import Base, TimestampMixin
import uuid
import enum


class AppRole(str, enum.Enum):
    """Роли сотрудников в портале"""
    ADMIN = "ADMIN"         # Администратор - полный доступ
    PLANNER = "PLANNER"     # Дежурный планировщик - локи, предпросмотр и запуск планирования
    USER = "USER"           # Обычный сотрудник


class Employee(Base, TimestampMixin):
    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Должность свободным текстом ("Oberärztin", "Assistenzarzt", ...)
    # Из неё выводится ролевая группа для дежурств
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)

    app_role: Mapped[AppRole] = mapped_column(SQLEnum(AppRole), default=AppRole.USER, nullable=False)

    # Участвует ли сотрудник в дежурствах
    takes_shifts: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # {"serviceTypeOverrides": ["gyn", ...]}
    shift_preferences: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    competencies: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Relationships
    absences = relationship("Absence", back_populates="employee", cascade="all, delete-orphan")
    planned_absences = relationship("PlannedAbsence", back_populates="employee", cascade="all, delete-orphan")
    shift_wishes = relationship("ShiftWish", back_populates="employee", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        if self.name and self.name.strip():
            return self.name.strip()
        full = " ".join(part for part in (self.last_name, self.first_name) if part).strip()
        return full or f"Mitarbeiter {self.id}"
