from minnow.rng import get_random_engine


def test_engines_are_independently_seeded():
    first = get_random_engine()
    second = get_random_engine()
    assert [first.getrandbits(64) for _ in range(4)] != [
        second.getrandbits(64) for _ in range(4)
    ]


def test_engine_is_reproducible_from_its_state():
    engine = get_random_engine()
    state = engine.getstate()
    draws = [engine.getrandbits(32) for _ in range(16)]
    engine.setstate(state)
    assert [engine.getrandbits(32) for _ in range(16)] == draws


def test_engine_draws_stay_in_range():
    engine = get_random_engine()
    draws = [engine.randint(0, 2**32 - 1) for _ in range(1000)]
    assert all(0 <= d <= 2**32 - 1 for d in draws)
    assert len(set(draws)) > 990