from datetime import date

import pytest

from dutyroster.exceptions import StructuralValidationError
from dutyroster.services.planning.validation import assert_valid_planning_input, assert_valid_planning_output

from conftest import employee_doc, planning_input, slot_doc


def valid_output() -> dict:
    return {
        "version": "v1",
        "meta": {
            "createdAt": "2025-01-01T00:00:00",
            "planningKind": "MONTHLY_DUTY",
            "engine": "local-greedy",
            "seed": 1,
        },
        "assignments": [{"slotId": "s1", "employeeId": "e1", "locked": False}],
        "violations": [],
        "unfilledSlots": [{"slotId": "s2", "reasons": ["no eligible employee available"]}],
        "summary": {"score": 0.5, "coverage": {"filled": 1, "required": 2}},
    }


def test_valid_output_passes():
    output = assert_valid_planning_output(valid_output())

    assert output.summary.coverage.filled == 1


def test_input_model_instance_is_revalidated():
    planning = planning_input([slot_doc("s1", date(2025, 1, 6))], [employee_doc("e1")])

    assert assert_valid_planning_input(planning) == planning


def test_all_errors_are_collected():
    payload = valid_output()
    payload["version"] = "v2"
    payload["summary"]["score"] = 1.5
    payload["unfilledSlots"][0]["reasons"] = []

    with pytest.raises(StructuralValidationError) as exc_info:
        assert_valid_planning_output(payload)

    error = exc_info.value
    assert error.label == "PlanningOutputV1"
    assert len(error.errors) == 3
    assert any(e.startswith("/version ") for e in error.errors)
    assert any(e.startswith("/summary/score ") for e in error.errors)
    assert any(e.startswith("/unfilledSlots/0/reasons ") for e in error.errors)
    assert str(error).startswith("PlanningOutputV1 invalid:\n1. ")


def test_unknown_fields_are_rejected():
    payload = valid_output()
    payload["assignments"][0]["note"] = "extra"

    with pytest.raises(StructuralValidationError) as exc_info:
        assert_valid_planning_output(payload)

    assert exc_info.value.errors[0].startswith("/assignments/0/note ")


def test_slot_reported_twice_is_rejected():
    payload = valid_output()
    payload["unfilledSlots"][0]["slotId"] = "s1"

    with pytest.raises(StructuralValidationError, match="slot s1 reported more than once"):
        assert_valid_planning_output(payload)


def test_invalid_weekday_in_input():
    with pytest.raises(StructuralValidationError) as exc_info:
        assert_valid_planning_input({
            "version": "v1",
            "meta": {"timezone": "Europe/Vienna", "createdAt": "2025-01-01T00:00:00", "planningKind": "MONTHLY_DUTY"},
            "period": {"startDate": "2025-01-01", "endDate": "2025-01-31", "year": 2025, "month": 1},
            "roles": [],
            "slots": [],
            "employees": [employee_doc("e1", ban_weekdays=[7])],
            "rules": {},
        })

    assert exc_info.value.errors[0].startswith("/employees/0/constraints/hard/banWeekdays/0 ")


def test_missing_required_field():
    with pytest.raises(StructuralValidationError) as exc_info:
        assert_valid_planning_input({"version": "v1"})

    paths = {e.split(" ")[0] for e in exc_info.value.errors}
    assert {"/meta", "/period", "/roles", "/slots", "/employees", "/rules"} <= paths
