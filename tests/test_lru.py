from tokenpulse.lru import TTLCache


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_entry_expires_exactly_at_ttl():
    clock = FakeClock()
    cache = TTLCache(maxsize=4, ttl=10, clock=clock)
    cache.set("a", 1)

    clock.now = 9.99
    assert cache.get("a") == 1
    clock.now = 10.0
    assert cache.get("a") is None
    assert "a" not in cache


def test_oldest_entry_evicted_when_full():
    cache = TTLCache(maxsize=2, ttl=60, clock=FakeClock())
    cache["a"] = 1
    cache["b"] = 2
    cache["c"] = 3

    assert "a" not in cache
    assert cache.keys() == ["b", "c"]
    assert len(cache) == 2


def test_rewrite_refreshes_timestamp():
    clock = FakeClock()
    cache = TTLCache(maxsize=4, ttl=10, clock=clock)
    cache.set("a", 1)
    clock.now = 5
    cache.set("a", 2)

    clock.now = 12
    assert cache.get("a") == 2
    clock.now = 15
    assert cache.get("a", "missing") == "missing"


def test_pop_and_clear():
    cache = TTLCache(maxsize=4, ttl=10, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.pop("a") == 1
    assert cache.pop("a", "gone") == "gone"
    cache.clear()
    assert len(cache) == 0
