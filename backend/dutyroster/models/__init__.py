from .base import Base
from .employee import Employee, AppRole
from .absence import Absence, PlannedAbsence, PlannedAbsenceStatus
from .shift_wish import ShiftWish, ShiftWishStatus
from .roster_planning import RosterPlanningLock, RosterPlanningRun
from .audit_log import AuditLog, AuditAction

__all__ = [
    "Base",
    "Employee",
    "AppRole",
    "Absence",
    "PlannedAbsence",
    "PlannedAbsenceStatus",
    "ShiftWish",
    "ShiftWishStatus",
    "RosterPlanningLock",
    "RosterPlanningRun",
    "AuditLog",
    "AuditAction",
]
