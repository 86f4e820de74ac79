from __future__ import annotations

import threading

import allure
import pytest

from category_attributes.cache import ResultCache, build_cache_key, sanitize_name

pytestmark = [
    allure.epic("Attribute Generation"),
    allure.feature("Result Cache"),
]


def test_cache_key_uses_prefix_id_and_sanitized_name() -> None:
    assert build_cache_key(42, "  Laptops \n") == "category-attributes:42:Laptops"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Garden\nHoses", "Garden Hoses"),
        ("Garden\r\nHoses", "Garden Hoses"),
        ("Garden\rHoses", "Garden Hoses"),
        ("\tPhones  ", "Phones"),
    ],
)
def test_sanitize_name_collapses_line_endings(raw: str, expected: str) -> None:
    assert sanitize_name(raw) == expected


def test_sanitize_name_truncates_to_200_characters() -> None:
    assert sanitize_name("x" * 250) == "x" * 200


def test_same_id_and_sanitized_name_are_cache_equivalent() -> None:
    assert build_cache_key(1, "Laptops") == build_cache_key(1, " Laptops\r\n")
    assert build_cache_key(1, "Laptops") != build_cache_key(2, "Laptops")


def test_get_returns_stored_value_until_expiry(fake_clock) -> None:
    cache = ResultCache(clock=fake_clock)
    cache.set("key", ["A", "B", "C"], ttl_seconds=60)

    fake_clock.advance(59)
    assert cache.get("key") == ("A", "B", "C")

    fake_clock.advance(1)
    assert cache.get("key") is None
    assert len(cache) == 0


def test_set_overwrites_existing_entry(fake_clock) -> None:
    cache = ResultCache(clock=fake_clock)
    cache.set("key", ["A", "B", "C"], ttl_seconds=60)
    cache.set("key", ["X", "Y", "Z"], ttl_seconds=60)

    assert cache.get("key") == ("X", "Y", "Z")


def test_non_positive_ttl_stores_nothing(fake_clock) -> None:
    cache = ResultCache(clock=fake_clock)
    cache.set("key", ["A", "B", "C"], ttl_seconds=0)

    assert cache.get("key") is None


def test_stored_value_is_isolated_from_caller_list(fake_clock) -> None:
    cache = ResultCache(clock=fake_clock)
    attributes = ["A", "B", "C"]
    cache.set("key", attributes, ttl_seconds=60)
    attributes.append("D")

    assert cache.get("key") == ("A", "B", "C")


def test_purge_expired_and_stats(fake_clock) -> None:
    cache = ResultCache(clock=fake_clock)
    cache.set("short", ["A", "B", "C"], ttl_seconds=10)
    cache.set("long", ["A", "B", "C"], ttl_seconds=100)
    cache.get("long")
    cache.get("missing")

    fake_clock.advance(20)
    assert cache.purge_expired() == 1

    stats = cache.stats()
    assert stats.entries == 1
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.evictions == 1

    cache.clear()
    assert cache.stats().entries == 0


def test_concurrent_writers_and_readers_never_observe_torn_values() -> None:
    cache = ResultCache()
    values = [tuple(f"{prefix}{index}" for index in range(3)) for prefix in "abcdefgh"]
    observed: list[tuple[str, ...] | None] = []
    lock = threading.Lock()

    def writer(value: tuple[str, ...]) -> None:
        for _ in range(200):
            cache.set("shared", value, ttl_seconds=60)

    def reader() -> None:
        for _ in range(200):
            result = cache.get("shared")
            with lock:
                observed.append(result)

    threads = [threading.Thread(target=writer, args=(value,)) for value in values]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(item is None or item in values for item in observed)
