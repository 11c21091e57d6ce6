"""
Версионированные документы планирования дежурств (v1).

PlanningInputV1 - вход движка, PlanningOutputV1 - результат.
Оба документа валидируются целиком перед использованием и сохранением,
лишние поля запрещены. В JSON ключи в camelCase.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "forbid"


Weekday = Annotated[int, Field(ge=0, le=6)]  # 0 = воскресенье
Cap = Annotated[int, Field(ge=0)]


class RoleGroup(str, Enum):
    """Грубая ролевая группа из должности"""
    PRIM = "PRIM"    # Primar
    OA = "OA"        # Oberarzt / Facharzt
    ASS = "ASS"      # Assistenzarzt
    TA = "TA"        # Turnusarzt
    OTHER = "OTHER"


class RuleKind(str, Enum):
    """Известные типы правил. Движок их пока не интерпретирует."""
    NO_CONSECUTIVE_DAYS = "NO_CONSECUTIVE_DAYS"
    MAX_PER_PERIOD = "MAX_PER_PERIOD"
    MAX_PER_ISO_WEEK = "MAX_PER_ISO_WEEK"


class ViolationCode(str, Enum):
    LOCK_INVALID_EMPLOYEE = "LOCK_INVALID_EMPLOYEE"
    LOCK_OVERRIDES_CONSTRAINT = "LOCK_OVERRIDES_CONSTRAINT"
    NO_CANDIDATE = "NO_CANDIDATE"


# ================= INPUT =================

class InputMeta(DocumentModel):
    timezone: str
    created_at: datetime
    planning_kind: str
    source: str | None = None


class PlanningPeriod(DocumentModel):
    start_date: date
    end_date: date
    year: int = Field(ge=1)
    month: int = Field(ge=1, le=12)


class ServiceRoleDoc(DocumentModel):
    id: str = Field(min_length=1)
    label: str
    tags: list[str] = []


class SlotDoc(DocumentModel):
    id: str = Field(min_length=1)
    date: date
    start_time: str | None = None
    end_time: str | None = None
    role_id: str = Field(min_length=1)
    required: int = Field(default=1, ge=1)
    iso_week: int = Field(ge=1, le=53)
    is_weekend: bool = False
    tags: list[str] = []


class Capabilities(DocumentModel):
    can_role_ids: list[str]
    skill_tags: list[str] = []


class Limits(DocumentModel):
    max_slots_in_period: Cap | None = None
    min_slots_in_period: Cap | None = None
    max_slots_per_iso_week: Cap | None = None
    max_weekend_slots_in_period: Cap | None = None


class HardConstraints(DocumentModel):
    ban_dates: list[date] = []
    ban_weekdays: list[Weekday] = []


class SoftConstraints(DocumentModel):
    prefer_dates: list[date] = []
    avoid_dates: list[date] = []
    prefer_service_types: list[str] = []
    avoid_service_types: list[str] = []


class EmployeeConstraints(DocumentModel):
    limits: Limits = Limits()
    hard: HardConstraints = HardConstraints()
    soft: SoftConstraints = SoftConstraints()


class EmployeeDoc(DocumentModel):
    id: str = Field(min_length=1)
    name: str
    group: RoleGroup
    capabilities: Capabilities
    constraints: EmployeeConstraints = EmployeeConstraints()


class RuleDescriptor(DocumentModel):
    id: str
    type: str
    hard: bool
    params: dict[str, Any] = {}


class PlanningRules(DocumentModel):
    hard_rules: list[RuleDescriptor] = []
    soft_rules: list[RuleDescriptor] = []
    weights: dict[str, float] = {}


class PlanningInputV1(DocumentModel):
    version: Literal["v1"]
    meta: InputMeta
    period: PlanningPeriod
    roles: list[ServiceRoleDoc]
    slots: list[SlotDoc]
    employees: list[EmployeeDoc]
    rules: PlanningRules

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen_slots = set()
        for slot in self.slots:
            if slot.id in seen_slots:
                raise ValueError(f"duplicate slot id {slot.id}")
            seen_slots.add(slot.id)
        seen_employees = set()
        for employee in self.employees:
            if employee.id in seen_employees:
                raise ValueError(f"duplicate employee id {employee.id}")
            seen_employees.add(employee.id)
        return self


# ================= OUTPUT =================

class OutputMeta(DocumentModel):
    created_at: datetime
    planning_kind: str
    engine: str
    seed: int
    rules: PlanningRules | None = None


class AssignmentDoc(DocumentModel):
    slot_id: str
    employee_id: str
    locked: bool = False


class ViolationDoc(DocumentModel):
    code: ViolationCode
    hard: bool
    message: str
    slot_id: str | None = None
    employee_id: str | None = None


class UnfilledSlotDoc(DocumentModel):
    slot_id: str
    reasons: list[str] = Field(min_length=1)


class Coverage(DocumentModel):
    filled: int = Field(ge=0)
    required: int = Field(ge=0)


class Summary(DocumentModel):
    score: float = Field(ge=0, le=1)
    coverage: Coverage


class PlanningOutputV1(DocumentModel):
    version: Literal["v1"]
    meta: OutputMeta
    assignments: list[AssignmentDoc]
    violations: list[ViolationDoc]
    unfilled_slots: list[UnfilledSlotDoc]
    summary: Summary

    @model_validator(mode="after")
    def check_slot_once(self):
        seen = set()
        for slot_id in [a.slot_id for a in self.assignments] + [u.slot_id for u in self.unfilled_slots]:
            if slot_id in seen:
                raise ValueError(f"slot {slot_id} reported more than once")
            seen.add(slot_id)
        return self


def dump_document(document: DocumentModel) -> dict:
    """Документ в JSON-совместимый dict с camelCase-ключами"""
    return document.model_dump(mode="json", by_alias=True, exclude_none=True)
