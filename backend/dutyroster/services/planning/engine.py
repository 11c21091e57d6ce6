import logging
from datetime import datetime
from typing import Mapping

from ...schemas.planning import PlanningInputV1, PlanningOutputV1, SlotDoc, ViolationCode
from .prng import StreamFactory, lcg_stream, seeded_shuffle
from .types import (
    REASON_LOCK_INVALID_EMPLOYEE,
    REASON_LOCKED_EMPTY,
    REASON_NO_CANDIDATE,
    Assignment,
    EmployeeState,
    EngineResult,
    LockSnapshot,
    UnfilledSlot,
    Violation,
)
from .validation import assert_valid_planning_output

logger = logging.getLogger(__name__)


class AssignmentEngine:
    """
    Движок распределения дежурств.

    Один детерминированный проход по слотам в порядке входного документа:
    - Лок всегда важнее алгоритма
    - Для свободного слота сотрудники тасуются генератором с seed
      base_seed + индекс слота + 1
    - Побеждает первый кандидат, прошедший все жёсткие фильтры

    Невыполнимость не бросает исключений: слот попадает в unfilled,
    а в нарушения добавляется запись NO_CANDIDATE.
    """

    def __init__(self, stream_factory: StreamFactory = lcg_stream):
        self.stream_factory = stream_factory

    def solve(
        self,
        planning_input: PlanningInputV1,
        locks: Mapping[str, LockSnapshot],
        seed: int,
    ) -> EngineResult:
        states = {e.id: EmployeeState.from_document(e) for e in planning_input.employees}
        # Базовый порядок для тасования - порядок сотрудников во входе
        ordered_states = list(states.values())
        result = EngineResult(required=len(planning_input.slots))

        for index, slot in enumerate(planning_input.slots):
            lock = locks.get(slot.id)
            if lock is not None:
                self._apply_lock(slot, lock, states, result)
                continue

            stream = self.stream_factory(seed + index + 1)
            candidates = seeded_shuffle(ordered_states, stream)

            winner = None
            blocked_by: set[str] = set()
            for state in candidates:
                blocking = state.first_blocking_filter(slot)
                if blocking is None:
                    winner = state
                    break
                blocked_by.add(blocking)

            if winner is None:
                result.unfilled_slots.append(UnfilledSlot(slot.id, [REASON_NO_CANDIDATE]))
                result.violations.append(Violation(
                    code=ViolationCode.NO_CANDIDATE,
                    hard=False,
                    slot_id=slot.id,
                    message=_no_candidate_message(slot, blocked_by),
                ))
                continue

            winner.record_assignment(slot)
            result.assignments.append(Assignment(slot.id, winner.id))
            result.filled += 1

        logger.debug(
            "Roster engine seed=%s: %s/%s slots filled, %s violations",
            seed, result.filled, result.required, len(result.violations)
        )
        return result

    def _apply_lock(
        self,
        slot: SlotDoc,
        lock: LockSnapshot,
        states: dict[str, EmployeeState],
        result: EngineResult,
    ):
        # Лок "пусто" - поиск кандидатов не выполняется
        if lock.employee_id is None:
            result.unfilled_slots.append(UnfilledSlot(slot.id, [REASON_LOCKED_EMPTY]))
            return

        employee_id = str(lock.employee_id)
        state = states.get(employee_id)
        if state is None:
            result.violations.append(Violation(
                code=ViolationCode.LOCK_INVALID_EMPLOYEE,
                hard=True,
                slot_id=slot.id,
                employee_id=employee_id,
                message=f"Lock references missing employee {employee_id}",
            ))
            result.unfilled_slots.append(UnfilledSlot(slot.id, [REASON_LOCK_INVALID_EMPLOYEE]))
            return

        blocking = state.first_blocking_filter(slot)
        if blocking is not None:
            result.violations.append(Violation(
                code=ViolationCode.LOCK_OVERRIDES_CONSTRAINT,
                hard=False,
                slot_id=slot.id,
                employee_id=employee_id,
                message=f"Lock assigns employee {employee_id} despite {blocking}",
            ))

        state.record_assignment(slot)
        result.assignments.append(Assignment(slot.id, employee_id, locked=True))
        result.filled += 1


def _no_candidate_message(slot: SlotDoc, blocked_by: set[str]) -> str:
    if not blocked_by:
        return f"No employees available for slot {slot.id}"
    return f"No eligible employee for slot {slot.id} (blocked by: {', '.join(sorted(blocked_by))})"


def build_planning_output(
    planning_input: PlanningInputV1,
    result: EngineResult,
    seed: int,
    engine_id: str,
    created_at: datetime,
) -> PlanningOutputV1:
    """Собрать выходной документ v1 и проверить его по схеме"""
    payload = {
        "version": "v1",
        "meta": {
            "createdAt": created_at,
            "planningKind": planning_input.meta.planning_kind,
            "engine": engine_id,
            "seed": seed,
            # Правила пока только сохраняются для аудита
            "rules": planning_input.rules,
        },
        "assignments": [a.to_dict() for a in result.assignments],
        "violations": [v.to_dict() for v in result.violations],
        "unfilledSlots": [u.to_dict() for u in result.unfilled_slots],
        "summary": result.summary(),
    }
    return assert_valid_planning_output(payload)
