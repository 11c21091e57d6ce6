"""
Валидация документов планирования по версионированным схемам.

Ошибка валидации фатальна: невалидный документ не передаётся дальше
и не сохраняется. Все нарушенные пути собираются в одну ошибку.
"""

from typing import Any

from pydantic import ValidationError

from ...exceptions import StructuralValidationError
from ...schemas.planning import DocumentModel, PlanningInputV1, PlanningOutputV1


def format_validation_errors(error: ValidationError) -> list[str]:
    """ValidationError -> ["/slots/0/id Field required", ...]"""
    messages = []
    for item in error.errors():
        path = "/" + "/".join(str(part) for part in item["loc"])
        messages.append(f"{path} {item['msg']}")
    return messages


def _validate(label: str, model: type[DocumentModel], payload: Any):
    if isinstance(payload, model):
        payload = payload.model_dump(by_alias=True, exclude_none=True)
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise StructuralValidationError(label, format_validation_errors(e)) from e


def assert_valid_planning_input(payload: Any) -> PlanningInputV1:
    return _validate("PlanningInputV1", PlanningInputV1, payload)


def assert_valid_planning_output(payload: Any) -> PlanningOutputV1:
    return _validate("PlanningOutputV1", PlanningOutputV1, payload)
