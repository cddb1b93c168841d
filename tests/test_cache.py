from cache import TTLCache

from conftest import FakeClock


def test_get_returns_value_within_ttl() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.set("k", {"a": 1}, ttl=60)
    clock.now += 59

    assert cache.get("k") == {"a": 1}


def test_entry_expires_at_ttl_and_is_dropped() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.set("k", [1, 2], ttl=60)
    clock.now += 60

    assert cache.get("k") is None
    assert len(cache) == 0


def test_entries_have_independent_ttls() -> None:
    clock = FakeClock()
    cache = TTLCache(clock=clock)

    cache.set("commits", "c", ttl=900)
    cache.set("repos", "r", ttl=3600)
    clock.now += 1000

    assert cache.get("commits") is None
    assert cache.get("repos") == "r"


def test_last_writer_wins_and_invalidate() -> None:
    cache = TTLCache(clock=FakeClock())

    cache.set("k", "first", ttl=10)
    cache.set("k", "second", ttl=10)
    assert cache.get("k") == "second"

    cache.invalidate("k")
    cache.invalidate("missing")
    assert cache.get("k") is None


def test_non_positive_ttl_is_not_stored() -> None:
    cache = TTLCache(clock=FakeClock())

    cache.set("k", "v", ttl=0)

    assert cache.get("k") is None
    assert len(cache) == 0
