import threading

from compdesk.cache import InMemoryResponseCache, NullResponseCache, cache_key


def test_cache_key_ignores_param_order():
    assert cache_key("details", 1, 2, limit=50, offset=0) == cache_key("details", 1, 2, offset=0, limit=50)


def test_in_memory_cache_round_trip_and_invalidate_by_root():
    cache = InMemoryResponseCache()
    cache.set(cache_key("summary", 1, 10), {"a": 1})
    cache.set(cache_key("summary", 2, 10), {"b": 2})

    assert cache.get(cache_key("summary", 1, 10)) == {"a": 1}
    assert cache.invalidate(1) == 1
    assert cache.get(cache_key("summary", 1, 10)) is None
    assert cache.get(cache_key("summary", 2, 10)) == {"b": 2}


def test_invalidate_everything():
    cache = InMemoryResponseCache()
    for root_id in range(5):
        cache.set(cache_key("tree", root_id, None, depth=3), root_id)

    assert cache.invalidate() == 5
    assert len(cache) == 0


def test_concurrent_writers_do_not_lose_entries():
    cache = InMemoryResponseCache()

    def writer(offset):
        for index in range(200):
            cache.set(cache_key("stats", offset, index), index)

    threads = [threading.Thread(target=writer, args=(offset,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 1600


def test_null_cache_never_stores():
    cache = NullResponseCache()
    cache.set(cache_key("summary", 1, 1), {"a": 1})

    assert cache.get(cache_key("summary", 1, 1)) is None
    assert cache.invalidate() == 0
