from .planning import (
    PlanningInputV1, PlanningOutputV1,
    RoleGroup, RuleKind, ViolationCode,
    dump_document,
)

__all__ = [
    "PlanningInputV1", "PlanningOutputV1",
    "RoleGroup", "RuleKind", "ViolationCode",
    "dump_document",
]
