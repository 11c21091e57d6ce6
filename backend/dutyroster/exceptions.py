"""
Ошибки планирования дежурств.

Невыполнимость (пустые слоты, нет кандидатов) сюда не относится:
она накапливается в выходном документе как нарушения, а не бросается.
"""


class PlanningError(Exception):
    """Базовая ошибка планирования"""

    pass


class StructuralValidationError(PlanningError):
    """Документ не соответствует версионированной схеме. Прерывает операцию до сохранения."""

    def __init__(self, label: str, errors: list[str]):
        self.label = label
        self.errors = errors
        details = "\n".join(f"{index}. {error}" for index, error in enumerate(errors, start=1))
        super().__init__(f"{label} invalid:\n{details or 'no additional details'}")


class PersistenceError(PlanningError):
    """Ошибка хранилища локов или запусков"""

    pass


# Mapping of custom exceptions to HTTP status codes
PLANNING_ERRORS = {
    StructuralValidationError: 422,
    PersistenceError: 503,
}
