"""
Сборка входного документа планирования дежурств (PlanningInputV1).

Документ пересобирается на каждый запрос из:
- каталога сервисных ролей (слоты: день x роль)
- списка сотрудников (ролевая группа -> допустимые роли)
- отсутствий (общих и запланированных на месяц) -> запрещённые даты
- пожеланий к дежурствам -> лимиты, запрещённые дни недели, мягкие предпочтения
"""

import calendar
import math
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from ...config import Settings
from ...models.base import utcnow
from ...schemas.planning import PlanningInputV1, RoleGroup, RuleKind
from .validation import assert_valid_planning_input

PLANNING_KIND = "MONTHLY_DUTY"


@dataclass(frozen=True)
class ServiceRole:
    id: str
    label: str
    start_time: str
    end_time: str
    tags: list[str] = field(default_factory=list)


SERVICE_ROLES: list[ServiceRole] = [
    ServiceRole("kreiszimmer", "Kreißzimmer (Ass.)", "07:30", "15:30", ["ASS"]),
    ServiceRole("gyn", "Gynäkologie (OA)", "07:30", "15:30", ["OA"]),
    ServiceRole("turnus", "Turnus (Ass./TA)", "07:30", "15:30", ["TA"]),
    ServiceRole("overduty", "Überdienst", "18:00", "07:00", ["OA", "ASS", "TA"]),
]

GROUP_ROLE_MAP: dict[RoleGroup, list[str]] = {
    RoleGroup.PRIM: ["overduty"],
    RoleGroup.OA: ["gyn", "kreiszimmer", "overduty"],
    RoleGroup.ASS: ["turnus", "kreiszimmer", "overduty"],
    RoleGroup.TA: ["turnus", "overduty"],
    RoleGroup.OTHER: ["overduty"],
}

# Подстроки должностей (уже без диакритики, в нижнем регистре)
OA_MARKERS = ("1. ober", "oberarzt", "facharzt", "funktionsober", "ausbildungsober")


def fold_text(value: str) -> str:
    """Нижний регистр без диакритики: 'Oberärztin' -> 'oberarztin'"""
    decomposed = unicodedata.normalize("NFKD", value.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def map_role_to_group(role: str | None) -> RoleGroup:
    if not role:
        return RoleGroup.OTHER
    normalized = fold_text(role)
    if "primar" in normalized:
        return RoleGroup.PRIM
    if any(marker in normalized for marker in OA_MARKERS):
        return RoleGroup.OA
    if "assistenz" in normalized:
        return RoleGroup.ASS
    if "turnus" in normalized:
        return RoleGroup.TA
    return RoleGroup.OTHER


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def expand_range(start: date, end: date, period_start: date, period_end: date) -> list[date]:
    """Даты диапазона [start, end], обрезанные по периоду"""
    current = max(start, period_start)
    last = min(end, period_end)
    dates = []
    while current <= last:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def create_slots_for_period(year: int, month: int, roles: list[ServiceRole] = SERVICE_ROLES) -> list[dict]:
    """Один слот на каждый (день месяца x сервисная роль), id стабилен между пересборками"""
    period_start, period_end = month_bounds(year, month)
    slots = []
    for day in expand_range(period_start, period_end, period_start, period_end):
        for role in roles:
            slots.append({
                "id": f"{day.isoformat()}-{role.id}",
                "date": day.isoformat(),
                "startTime": role.start_time,
                "endTime": role.end_time,
                "roleId": role.id,
                "required": 1,
                "isoWeek": day.isocalendar()[1],
                "isWeekend": day.weekday() >= 5,
                "tags": list(role.tags),
            })
    return slots


# ================= NORMALIZATION =================

def optional_number(value: Any) -> int | None:
    """Необязательное число из пожеланий; мусор -> None вместо ошибки"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0 or value != int(value):
        return None
    return int(value)


def normalize_string_list(values: Any) -> list[str]:
    if not isinstance(values, list):
        return []
    result = []
    for entry in values:
        if isinstance(entry, str) and entry.strip() and entry.strip() not in result:
            result.append(entry.strip())
    return result


def normalize_weekdays(values: Any) -> list[int]:
    if not isinstance(values, list):
        return []
    weekdays = set()
    for value in values:
        number = optional_number(value)
        if number is not None and 0 <= number <= 6:
            weekdays.add(number)
    return sorted(weekdays)


def normalize_days(values: Any, period_start: date, period_end: date) -> list[date]:
    """
    Дни из пожеланий: номер дня месяца или ISO-дата.
    Остаются только даты внутри периода.
    """
    if not isinstance(values, list):
        return []
    dates = set()
    for value in values:
        day = None
        number = optional_number(value)
        if number is not None:
            if 1 <= number <= period_end.day:
                day = period_start.replace(day=number)
        elif isinstance(value, str):
            try:
                day = date.fromisoformat(value.strip())
            except ValueError:
                day = None
        if day is not None and period_start <= day <= period_end:
            dates.add(day)
    return sorted(dates)


@dataclass
class NormalizedWish:
    prefer_dates: list[date] = field(default_factory=list)
    avoid_dates: list[date] = field(default_factory=list)
    avoid_weekdays: list[int] = field(default_factory=list)
    preferred_service_types: list[str] = field(default_factory=list)
    avoid_service_types: list[str] = field(default_factory=list)
    max_shifts_per_month: int | None = None
    max_shifts_per_week: int | None = None
    max_weekend_shifts: int | None = None


def normalize_shift_wish(wish, period_start: date, period_end: date) -> NormalizedWish:
    if wish is None:
        return NormalizedWish()
    return NormalizedWish(
        prefer_dates=normalize_days(wish.preferred_shift_days, period_start, period_end),
        avoid_dates=normalize_days(wish.avoid_shift_days, period_start, period_end),
        avoid_weekdays=normalize_weekdays(wish.avoid_weekdays),
        preferred_service_types=normalize_string_list(wish.preferred_service_types),
        avoid_service_types=normalize_string_list(wish.avoid_service_types),
        max_shifts_per_month=optional_number(wish.max_shifts_per_month),
        max_shifts_per_week=optional_number(wish.max_shifts_per_week),
        max_weekend_shifts=optional_number(wish.max_weekend_shifts),
    )


def default_rules(settings: Settings) -> dict:
    return {
        "hardRules": [
            {"id": "no-consecutive-days", "type": RuleKind.NO_CONSECUTIVE_DAYS.value, "hard": True, "params": {}},
            {
                "id": "max-per-period",
                "type": RuleKind.MAX_PER_PERIOD.value,
                "hard": True,
                "params": {"limit": settings.default_max_slots_in_period},
            },
            {
                "id": "max-per-iso-week",
                "type": RuleKind.MAX_PER_ISO_WEEK.value,
                "hard": True,
                "params": {"limit": settings.default_max_slots_per_week},
            },
        ],
        "softRules": [],
        "weights": {
            "prefer": 1,
            "avoid": 1,
            "weekendFairness": 1,
            "avoidWeekendStreak": 1,
            "continuity": 1,
        },
    }


# ================= BUILDER =================

class PlanningInputBuilder:
    """Сборщик входного документа из уже загруженных записей"""

    def __init__(self, settings: Settings, roles: list[ServiceRole] = SERVICE_ROLES):
        self.settings = settings
        self.roles = roles

    def build(
        self,
        year: int,
        month: int,
        employees: Iterable,
        absences: Iterable = (),
        planned_absences: Iterable = (),
        shift_wishes: Iterable = (),
        created_at: datetime | None = None,
    ) -> PlanningInputV1:
        period_start, period_end = month_bounds(year, month)
        slots = create_slots_for_period(year, month, self.roles)

        # Все отсутствия (общие и плановые) объединяются в один набор дат
        banned_dates: dict[str, set[date]] = {}
        for absence in [*absences, *planned_absences]:
            dates = expand_range(absence.start_date, absence.end_date, period_start, period_end)
            if dates:
                banned_dates.setdefault(str(absence.employee_id), set()).update(dates)

        wishes_by_employee = {str(wish.employee_id): wish for wish in shift_wishes}

        employee_docs = []
        for employee in employees:
            if employee.takes_shifts is False or employee.is_active is False:
                continue
            employee_docs.append(self._build_employee(
                employee,
                normalize_shift_wish(wishes_by_employee.get(str(employee.id)), period_start, period_end),
                banned_dates.get(str(employee.id), set()),
            ))

        document = {
            "version": "v1",
            "meta": {
                "timezone": self.settings.planning_timezone,
                "createdAt": created_at or utcnow(),
                "planningKind": PLANNING_KIND,
                "source": self.settings.planning_source,
            },
            "period": {
                "startDate": period_start.isoformat(),
                "endDate": period_end.isoformat(),
                "year": year,
                "month": month,
            },
            "roles": [{"id": r.id, "label": r.label, "tags": list(r.tags)} for r in self.roles],
            "slots": slots,
            "employees": employee_docs,
            "rules": default_rules(self.settings),
        }
        return assert_valid_planning_input(document)

    def _build_employee(self, employee, wish: NormalizedWish, banned: set[date]) -> dict:
        group = map_role_to_group(employee.role)
        preferences = employee.shift_preferences if isinstance(employee.shift_preferences, dict) else {}
        overrides = normalize_string_list(preferences.get("serviceTypeOverrides"))

        # Переопределения дополняют роли группы, а не заменяют их
        role_ids = list(GROUP_ROLE_MAP[group])
        for role_id in overrides:
            if role_id not in role_ids:
                role_ids.append(role_id)

        max_in_period = wish.max_shifts_per_month
        if max_in_period is None:
            max_in_period = self.settings.default_max_slots_in_period
        max_per_week = wish.max_shifts_per_week
        if max_per_week is None:
            max_per_week = self.settings.default_max_slots_per_week

        return {
            "id": str(employee.id),
            "name": employee.display_name,
            "group": group.value,
            "capabilities": {
                "canRoleIds": role_ids,
                "skillTags": normalize_string_list(employee.competencies),
            },
            "constraints": {
                "limits": {
                    "maxSlotsInPeriod": max_in_period,
                    "minSlotsInPeriod": 0,
                    "maxSlotsPerIsoWeek": max_per_week,
                    "maxWeekendSlotsInPeriod": wish.max_weekend_shifts,
                },
                "hard": {
                    "banDates": [d.isoformat() for d in sorted(banned)],
                    "banWeekdays": wish.avoid_weekdays,
                },
                "soft": {
                    "preferDates": [d.isoformat() for d in wish.prefer_dates],
                    "avoidDates": [d.isoformat() for d in wish.avoid_dates],
                    "preferServiceTypes": wish.preferred_service_types,
                    "avoidServiceTypes": wish.avoid_service_types,
                },
            },
        }
