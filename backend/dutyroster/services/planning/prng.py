"""
Детерминированный генератор псевдослучайных чисел для движка.

Линейный конгруэнтный генератор (параметры Numerical Recipes) по модулю 2^32.
Один и тот же seed всегда даёт одну и ту же последовательность.
"""

from typing import Callable, Iterator, Sequence, TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
LCG_MODULUS = 2 ** 32

RandomStream = Iterator[float]
StreamFactory = Callable[[int], RandomStream]


def lcg_stream(seed: int) -> RandomStream:
    """Бесконечный поток чисел в [0, 1) для заданного seed"""
    state = int(seed) % LCG_MODULUS
    while True:
        state = (LCG_MULTIPLIER * state + LCG_INCREMENT) % LCG_MODULUS
        yield state / LCG_MODULUS


def seeded_shuffle(items: Sequence[T], stream: RandomStream) -> list[T]:
    """Тасование Фишера-Йетса; исходная последовательность не меняется"""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(next(stream) * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result
