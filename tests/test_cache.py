from echolingo.utils.cache import ProviderCache, build_cache_key


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire() -> None:
    clock = Clock()
    cache = ProviderCache(clock=clock)
    cache.set("translation", "k", "蘋果", ttl_seconds=10)

    clock.now = 9.9
    assert cache.get("translation", "k") == "蘋果"
    clock.now = 10
    assert cache.get("translation", "k") is None
    assert len(cache) == 0


def test_namespaces_are_separate_and_values_copied() -> None:
    cache = ProviderCache()
    cache.set("news", "k", [{"title": "a"}], ttl_seconds=0)

    first = cache.get("news", "k")
    first.append({"title": "b"})

    assert cache.get("news", "k") == [{"title": "a"}]
    assert cache.get("translation", "k") is None


def test_least_recently_used_is_evicted() -> None:
    cache = ProviderCache(max_entries=2)
    cache.set("n", "a", 1, ttl_seconds=0)
    cache.set("n", "b", 2, ttl_seconds=0)
    cache.get("n", "a")
    cache.set("n", "c", 3, ttl_seconds=0)

    assert cache.get("n", "b") is None
    assert (cache.get("n", "a"), cache.get("n", "c")) == (1, 3)


def test_build_cache_key_is_order_independent() -> None:
    assert build_cache_key(lang="en", limit=8) == build_cache_key(limit=8, lang="en")
    assert build_cache_key(text="雨") != build_cache_key(text="雪")
