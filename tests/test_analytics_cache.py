from clinic_api.infrastructure.analytics_cache import (
    DASHBOARD_TTL_SECONDS,
    AnalyticsCache,
    build_cache_key,
    ttl_for_granularity,
)


def test_cache_key_is_independent_of_parameter_order():
    first = build_cache_key("t1", "revenue", {"dateTo": "2024-01-31", "dateFrom": "2024-01-01"})
    second = build_cache_key("t1", "revenue", {"dateFrom": "2024-01-01", "dateTo": "2024-01-31"})

    assert first == second == "analytics:t1:revenue:dateFrom:2024-01-01:dateTo:2024-01-31"


def test_cache_key_drops_missing_values():
    key = build_cache_key("t1", "patients", {"branchId": None, "granularity": "daily"})

    assert key == "analytics:t1:patients:granularity:daily"


def test_ttl_follows_granularity():
    assert ttl_for_granularity("daily") == 300
    assert ttl_for_granularity("weekly") == 900
    assert ttl_for_granularity("monthly") == 3600
    assert ttl_for_granularity(None) == 60


def test_set_and_get_round_trip(cache_client):
    cache = AnalyticsCache(cache_client)

    cache.set("analytics:t1:revenue:", {"total": 10.5}, "weekly")
    cache.set_dashboard("analytics:t1:dashboard:", {"revenue": {"total": 1}})

    assert cache.get("analytics:t1:revenue:") == {"total": 10.5}
    assert cache_client.ttls["analytics:t1:revenue:"] == 900
    assert cache_client.ttls["analytics:t1:dashboard:"] == DASHBOARD_TTL_SECONDS


def test_backend_errors_behave_like_a_miss(cache_client):
    cache = AnalyticsCache(cache_client)
    cache.set("analytics:t1:revenue:", {"total": 1})
    cache_client.fail = True

    assert cache.get("analytics:t1:revenue:") is None
    cache.set("analytics:t1:revenue:", {"total": 2})
    assert cache.invalidate("t1") == 0


def test_undecodable_entry_is_a_miss(cache_client):
    cache_client.store["analytics:t1:staff:"] = "{broken"

    assert AnalyticsCache(cache_client).get("analytics:t1:staff:") is None


def test_invalidate_is_tenant_and_report_scoped(cache_client):
    cache = AnalyticsCache(cache_client)
    cache.set(build_cache_key("t1", "revenue", {"granularity": "daily"}), {})
    cache.set(build_cache_key("t1", "patients", {"granularity": "daily"}), {})
    cache.set(build_cache_key("t2", "revenue", {"granularity": "daily"}), {})

    assert cache.invalidate("t1", "revenue") == 1
    assert cache.invalidate("t1") == 1
    assert list(cache_client.store) == ["analytics:t2:revenue:granularity:daily"]
