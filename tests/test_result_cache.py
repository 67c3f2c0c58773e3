from __future__ import annotations

from wip_engine.services.result_cache import InMemoryResultCache, build_cache_key


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _key(**overrides: object) -> str:
    values: dict[str, object] = {
        "scope": "client",
        "subject": 1,
        "strategy": "transactions",
        "mode": "fiscal",
        "fiscal_year": "2024",
        "fiscal_month": "November",
        "window": ("2023-09-01", "2023-11-30"),
    }
    values.update(overrides)
    return build_cache_key(**values)


def test_identical_inputs_give_identical_keys() -> None:
    assert _key() == _key()
    assert _key(fiscal_year=2024) == _key(fiscal_year="2024")


def test_fiscal_month_changes_the_key() -> None:
    assert _key(fiscal_month="November") != _key(fiscal_month="December")
    assert _key(fiscal_month="November") != _key(fiscal_month=None)


def test_every_dimension_changes_the_key() -> None:
    base = _key()
    variants = [
        _key(scope="group"),
        _key(subject=2),
        _key(strategy="stored_aggregation"),
        _key(mode="custom"),
        _key(fiscal_year="2023"),
        _key(start_date="2024-01-01"),
        _key(end_date="2024-02-01"),
        _key(sub_service_line_group="TAXG"),
        _key(window=("2023-09-01", "2023-12-31")),
    ]

    assert base not in variants
    assert len(set(variants)) == len(variants)


def test_missing_and_empty_values_do_not_collide() -> None:
    assert _key(sub_service_line_group=None) != _key(sub_service_line_group="")


def test_entries_expire_after_ttl() -> None:
    clock = _Clock()
    cache = InMemoryResultCache(clock=clock)
    cache.set("k", {"value": 1}, ttl_seconds=600)

    clock.now += 599
    assert cache.get("k") == {"value": 1}
    clock.now += 1
    assert cache.get("k") is None


def test_cached_values_are_copies() -> None:
    cache = InMemoryResultCache()
    payload = {"overall": {"ltd_time": "1.00"}}
    cache.set("k", payload, ttl_seconds=60)
    payload["overall"]["ltd_time"] = "9.00"

    first = cache.get("k")
    first["overall"]["ltd_time"] = "5.00"

    assert cache.get("k") == {"overall": {"ltd_time": "1.00"}}


def test_full_cache_evicts_soonest_expiring_entry() -> None:
    clock = _Clock()
    cache = InMemoryResultCache(clock=clock, max_entries=2)
    cache.set("a", {"v": "a"}, ttl_seconds=10)
    cache.set("b", {"v": "b"}, ttl_seconds=100)
    cache.set("c", {"v": "c"}, ttl_seconds=100)

    assert cache.get("a") is None
    assert cache.get("b") == {"v": "b"}
    assert cache.get("c") == {"v": "c"}
