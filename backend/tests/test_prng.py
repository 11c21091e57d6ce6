from itertools import islice

from dutyroster.services.planning.prng import LCG_MODULUS, lcg_stream, seeded_shuffle


def test_lcg_known_sequence():
    values = list(islice(lcg_stream(0), 3))
    assert values == [
        1013904223 / LCG_MODULUS,
        1196435762 / LCG_MODULUS,
        3519870697 / LCG_MODULUS,
    ]


def test_lcg_same_seed_same_sequence():
    assert list(islice(lcg_stream(42), 20)) == list(islice(lcg_stream(42), 20))
    assert list(islice(lcg_stream(42), 5)) != list(islice(lcg_stream(43), 5))


def test_lcg_values_in_unit_interval():
    for value in islice(lcg_stream(1700000000000), 1000):
        assert 0 <= value < 1


def test_lcg_large_and_negative_seeds_wrap():
    assert list(islice(lcg_stream(LCG_MODULUS + 7), 5)) == list(islice(lcg_stream(7), 5))
    assert list(islice(lcg_stream(-1), 5)) == list(islice(lcg_stream(LCG_MODULUS - 1), 5))


def test_shuffle_uses_fisher_yates_order():
    # j = 0 на каждом шаге: [a, b, c] -> [c, b, a] -> [b, c, a]
    assert seeded_shuffle(["a", "b", "c"], iter([0.0, 0.0])) == ["b", "c", "a"]


def test_shuffle_is_permutation_and_keeps_source():
    items = list(range(10))
    shuffled = seeded_shuffle(items, lcg_stream(5))
    assert sorted(shuffled) == items
    assert items == list(range(10))
    assert shuffled == seeded_shuffle(items, lcg_stream(5))


def test_shuffle_short_sequences():
    assert seeded_shuffle([], lcg_stream(1)) == []
    assert seeded_shuffle(["x"], lcg_stream(1)) == ["x"]
