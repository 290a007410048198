# backend/tests/test_dependencies.py
"""
Tests for service wiring (build_services).

Nothing here performs network I/O; providers are constructed but never
asked for a price.
"""

from asset_diary.config import Settings
from asset_diary.dependencies import build_services
from asset_diary.services.circuit_breaker import CircuitState
from asset_diary.services.market_data import InMemoryPriceCacheStore, SqlAlchemyPriceCacheStore


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "database_url": "sqlite:///:memory:",
        "gemini_api_key": None,
    }
    values.update(overrides)
    return Settings(**values)


class TestBuildServices:

    def test_yahoo_only_without_gemini_key(self, session_factory):
        services = build_services(make_settings(), session_factory)
        try:
            assert [p.name for p in services.providers] == ["yahoo"]
            assert services.providers[0].circuit_breaker.state == CircuitState.CLOSED
        finally:
            services.close()

    def test_gemini_added_as_fallback(self, session_factory):
        services = build_services(make_settings(gemini_api_key="test-key"), session_factory)
        try:
            assert [p.name for p in services.providers] == ["yahoo", "gemini"]
        finally:
            services.close()

    def test_memory_cache_by_default(self, session_factory):
        services = build_services(make_settings(), session_factory)
        try:
            assert isinstance(services.price_source.store, InMemoryPriceCacheStore)
        finally:
            services.close()

    def test_database_cache_backend(self, session_factory):
        services = build_services(make_settings(price_cache_backend="database"), session_factory)
        try:
            assert isinstance(services.price_source.store, SqlAlchemyPriceCacheStore)
        finally:
            services.close()

    def test_breaker_settings_applied(self, session_factory):
        settings = make_settings(provider_failure_threshold=2, provider_recovery_timeout_seconds=5)
        services = build_services(settings, session_factory)
        try:
            breaker = services.providers[0].circuit_breaker
            assert breaker.failure_threshold == 2
            assert breaker.recovery_timeout == 5
        finally:
            services.close()

    def test_start_and_close_manage_sweeper(self, session_factory):
        services = build_services(make_settings(), session_factory)

        services.start()
        assert services.sweeper.is_running

        services.close()
        assert not services.sweeper.is_running
