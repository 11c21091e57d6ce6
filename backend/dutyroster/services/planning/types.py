from dataclasses import dataclass, field
from datetime import date, datetime

from ...schemas.planning import EmployeeDoc, SlotDoc, ViolationCode


# Причины, по которым слот остался пустым
REASON_LOCKED_EMPTY = "slot locked empty"
REASON_LOCK_INVALID_EMPLOYEE = "lock references unknown employee"
REASON_NO_CANDIDATE = "no eligible employee available"

# Коды жёстких фильтров (в порядке проверки)
ROLE_NOT_ALLOWED = "ROLE_NOT_ALLOWED"
BAN_DATE = "BAN_DATE"
BAN_WEEKDAY = "BAN_WEEKDAY"
MAX_SLOTS = "MAX_SLOTS"
MAX_WEEK_SLOTS = "MAX_WEEK_SLOTS"
ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
MAX_WEEKEND_SLOTS = "MAX_WEEKEND_SLOTS"

FALLBACK_ROLE_ID = "overduty"


def js_weekday(day: date) -> int:
    """День недели как в документах: 0 = воскресенье ... 6 = суббота"""
    return (day.weekday() + 1) % 7


def _cap(value: int | None) -> int | None:
    # Отсутствующий или неположительный лимит = без ограничения
    if value is None or value <= 0:
        return None
    return value


@dataclass(frozen=True)
class LockSnapshot:
    """Лок слота, каким его видит движок"""
    slot_id: str
    employee_id: str | None
    updated_at: datetime | None = None


@dataclass
class EmployeeState:
    """Рабочее состояние сотрудника на один запуск движка"""
    id: str
    can_role_ids: set[str]
    ban_dates: set[date] = field(default_factory=set)
    ban_weekdays: set[int] = field(default_factory=set)
    max_slots: int | None = None
    max_slots_per_week: int | None = None
    max_weekend_slots: int | None = None
    assigned_count: int = 0
    assigned_per_week: dict[int, int] = field(default_factory=dict)
    assigned_dates: set[date] = field(default_factory=set)
    assigned_weekends: int = 0

    @classmethod
    def from_document(cls, employee: EmployeeDoc) -> "EmployeeState":
        limits = employee.constraints.limits
        hard = employee.constraints.hard
        can_role_ids = set(employee.capabilities.can_role_ids)
        if not can_role_ids:
            can_role_ids.add(FALLBACK_ROLE_ID)
        return cls(
            id=employee.id,
            can_role_ids=can_role_ids,
            ban_dates=set(hard.ban_dates),
            ban_weekdays=set(hard.ban_weekdays),
            max_slots=_cap(limits.max_slots_in_period),
            max_slots_per_week=_cap(limits.max_slots_per_iso_week),
            max_weekend_slots=_cap(limits.max_weekend_slots_in_period),
        )

    def first_blocking_filter(self, slot: SlotDoc) -> str | None:
        """
        Проверить жёсткие фильтры в фиксированном порядке.
        Возвращает код первого нарушенного фильтра или None.
        """
        if slot.role_id not in self.can_role_ids:
            return ROLE_NOT_ALLOWED
        if slot.date in self.ban_dates:
            return BAN_DATE
        if js_weekday(slot.date) in self.ban_weekdays:
            return BAN_WEEKDAY
        if self.max_slots is not None and self.assigned_count >= self.max_slots:
            return MAX_SLOTS
        week_count = self.assigned_per_week.get(slot.iso_week, 0)
        if self.max_slots_per_week is not None and week_count >= self.max_slots_per_week:
            return MAX_WEEK_SLOTS
        if slot.date in self.assigned_dates:
            return ALREADY_ASSIGNED
        if (
            slot.is_weekend
            and self.max_weekend_slots is not None
            and self.assigned_weekends >= self.max_weekend_slots
        ):
            return MAX_WEEKEND_SLOTS
        return None

    def record_assignment(self, slot: SlotDoc):
        self.assigned_count += 1
        self.assigned_dates.add(slot.date)
        self.assigned_per_week[slot.iso_week] = self.assigned_per_week.get(slot.iso_week, 0) + 1
        if slot.is_weekend:
            self.assigned_weekends += 1


@dataclass
class Assignment:
    slot_id: str
    employee_id: str
    locked: bool = False

    def to_dict(self) -> dict:
        return {
            "slotId": self.slot_id,
            "employeeId": self.employee_id,
            "locked": self.locked,
        }


@dataclass
class Violation:
    code: ViolationCode
    hard: bool
    message: str
    slot_id: str | None = None
    employee_id: str | None = None

    def to_dict(self) -> dict:
        data = {
            "code": self.code.value,
            "hard": self.hard,
            "message": self.message,
        }
        if self.slot_id is not None:
            data["slotId"] = self.slot_id
        if self.employee_id is not None:
            data["employeeId"] = self.employee_id
        return data


@dataclass
class UnfilledSlot:
    slot_id: str
    reasons: list[str]

    def to_dict(self) -> dict:
        return {"slotId": self.slot_id, "reasons": list(self.reasons)}


@dataclass
class EngineResult:
    """Результат одного прохода движка"""
    assignments: list[Assignment] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    unfilled_slots: list[UnfilledSlot] = field(default_factory=list)
    filled: int = 0
    required: int = 0

    @property
    def score(self) -> float:
        return self.filled / self.required if self.required else 0

    def summary(self) -> dict:
        return {
            "score": self.score,
            "coverage": {"filled": self.filled, "required": self.required},
        }
