# backend/asset_diary/dependencies.py
"""
Service wiring and FastAPI dependencies.

The object graph is built once by `build_services()` during application
startup (see main.lifespan) and stored on `app.state.services`. Routers
receive individual services through the `get_*` dependencies below, which
read from that container; tests swap pieces via `app.dependency_overrides`.

Price chain:
    CachingPriceSource
    └── FallbackPriceSource
        ├── YahooPriceProvider   (primary, circuit breaker)
        └── GeminiPriceProvider  (secondary, only when GEMINI_API_KEY is set)

Usage in routers:
    @router.get("/users/{user_id}/holdings")
    def list_holdings(
        user_id: int,
        db: Session = Depends(get_db),
        service: HoldingsService = Depends(get_holdings_service),
    ):
        ...
"""

import logging
from dataclasses import dataclass, field

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from asset_diary.config import Settings
from asset_diary.services.circuit_breaker import CircuitBreaker
from asset_diary.services.exceptions import InvalidSymbolError
from asset_diary.services.fx_rate_service import ExchangeRateService
from asset_diary.services.holdings import HoldingsService
from asset_diary.services.market_data import (
    CachingPriceSource,
    FallbackPriceSource,
    GeminiPriceProvider,
    InMemoryPriceCacheStore,
    PriceCacheSweeper,
    PriceProvider,
    SqlAlchemyPriceCacheStore,
    YahooPriceProvider,
)
from asset_diary.services.protocols import PriceCacheStore
from asset_diary.services.valuation import ValuationService

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Everything the API needs, built once per application."""

    price_source: CachingPriceSource
    fx_service: ExchangeRateService
    holdings_service: HoldingsService
    valuation_service: ValuationService
    sweeper: PriceCacheSweeper
    providers: list[PriceProvider] = field(default_factory=list)

    def start(self) -> None:
        self.sweeper.start()

    def close(self) -> None:
        self.sweeper.stop()
        for provider in self.providers:
            provider.close()


# =============================================================================
# CONSTRUCTION
# =============================================================================

def _breaker(name: str, settings: Settings) -> CircuitBreaker:
    return CircuitBreaker(
        name=name,
        failure_threshold=settings.provider_failure_threshold,
        recovery_timeout=settings.provider_recovery_timeout_seconds,
        excluded_exceptions=(InvalidSymbolError,),
    )


def _build_cache_store(settings: Settings, session_factory: sessionmaker) -> PriceCacheStore:
    if settings.price_cache_backend == "database":
        return SqlAlchemyPriceCacheStore(session_factory)
    return InMemoryPriceCacheStore()


def build_services(settings: Settings, session_factory: sessionmaker) -> ServiceContainer:
    """
    Build the full service graph from settings.

    Nothing here touches the network; providers connect lazily on first use.
    """
    yahoo = YahooPriceProvider(
        circuit_breaker=_breaker("yahoo", settings),
        max_retry_attempts=settings.provider_retry_attempts,
    )
    providers: list[PriceProvider] = [yahoo]

    secondary: PriceProvider | None = None
    if settings.is_gemini_configured:
        secondary = GeminiPriceProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.gemini_timeout_seconds,
            circuit_breaker=_breaker("gemini", settings),
            max_retry_attempts=settings.provider_retry_attempts,
        )
        providers.append(secondary)
    else:
        logger.info("GEMINI_API_KEY not set; price lookups have no fallback provider")

    store = _build_cache_store(settings, session_factory)
    price_source = CachingPriceSource(
        FallbackPriceSource(yahoo, secondary),
        store,
        ttl=settings.price_cache_ttl,
    )

    fx_service = ExchangeRateService(provider=yahoo)
    holdings_service = HoldingsService(
        price_source=price_source,
        fx_service=fx_service,
        default_display_currency=settings.default_display_currency,
        max_workers=settings.price_fetch_max_workers,
    )
    valuation_service = ValuationService(holdings_service, fx_service)

    logger.info(
        f"Services built: cache={settings.price_cache_backend}, "
        f"ttl={settings.price_cache_ttl_minutes}min, providers={[p.name for p in providers]}"
    )

    return ServiceContainer(
        price_source=price_source,
        fx_service=fx_service,
        holdings_service=holdings_service,
        valuation_service=valuation_service,
        sweeper=PriceCacheSweeper(store, interval_seconds=settings.price_cache_sweep_interval_seconds),
        providers=providers,
    )


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_price_source(request: Request) -> CachingPriceSource:
    return get_services(request).price_source


def get_holdings_service(request: Request) -> HoldingsService:
    return get_services(request).holdings_service


def get_valuation_service(request: Request) -> ValuationService:
    return get_services(request).valuation_service
