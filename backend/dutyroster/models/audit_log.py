"""
Модель для аудит-логов.

Записывает действия, влияющие на план дежурств:
- Создание/изменение/удаление локов
- Сохранённые запуски планирования
"""
from sqlalchemy import String, Text, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from .base import Base, TimestampMixin
import uuid
import enum


class AuditAction(str, enum.Enum):
    """Типы действий для аудита"""
    # Planning
    PLANNING_LOCK_SAVED = "PLANNING_LOCK_SAVED"
    PLANNING_LOCK_DELETED = "PLANNING_LOCK_DELETED"
    PLANNING_RUN_CREATED = "PLANNING_RUN_CREATED"


class AuditLog(Base, TimestampMixin):
    """Модель аудит-лога"""
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Кто выполнил действие
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    actor_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Что сделал
    action: Mapped[AuditAction] = mapped_column(SQLEnum(AuditAction), nullable=False, index=True)

    # Над чем
    entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)  # planning_lock, planning_run
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Детали (JSON-like text)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self):
        return f"<AuditLog {self.action.value} by {self.actor_name} at {self.created_at}>"
