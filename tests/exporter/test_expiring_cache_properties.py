"""Property-based tests for ExpiringCache.

Testing Configuration:
- Library: Hypothesis (Python)
- Iterations: set per test with @settings(max_examples=...)
"""

from hypothesis import given, settings, strategies as st

from actions_exporter.cache import ExpiringCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


keys = st.text(min_size=1, max_size=12)
operations = st.lists(
    st.tuples(
        st.sampled_from(["set", "delete", "advance"]),
        keys,
        st.integers(min_value=0, max_value=100),
        st.floats(min_value=0.0, max_value=30.0, allow_nan=False),
    ),
    max_size=60,
)


@settings(max_examples=150)
@given(ops=operations, shard_count=st.integers(min_value=1, max_value=8))
def test_matches_reference_model(ops, shard_count):
    """Visible state always equals a plain dict with expiry times."""
    clock = FakeClock()
    cache = ExpiringCache(default_ttl=10, shard_count=shard_count, clock=clock)
    model = {}

    for op, key, value, seconds in ops:
        if op == "set":
            cache.set(key, value)
            model[key] = (value, clock.now + 10)
        elif op == "delete":
            cache.delete(key)
            model.pop(key, None)
        else:
            clock.now += seconds

        live = {k: v for k, (v, expires_at) in model.items() if expires_at > clock.now}
        assert cache.count() == len(live)
        for k, (v, _) in model.items():
            expected = (v, True) if k in live else (None, False)
            assert cache.get(k) == expected


@settings(max_examples=100)
@given(
    entries=st.dictionaries(keys, st.floats(min_value=1.0, max_value=100.0), max_size=30),
    elapsed=st.floats(min_value=0.0, max_value=150.0),
)
def test_delete_expired_removes_exactly_expired(entries, elapsed):
    clock = FakeClock()
    cache = ExpiringCache(default_ttl=50, clock=clock)
    for key, ttl in entries.items():
        cache.set(key, key, ttl=ttl)

    clock.now += elapsed
    removed = cache.delete_expired()

    assert removed == sum(1 for ttl in entries.values() if ttl <= elapsed)
    assert cache.count() == len(entries) - removed
