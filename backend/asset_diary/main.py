# backend/asset_diary/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Builds the service graph and starts the price cache sweeper (lifespan)
- Registers global exception handlers
- Registers all routers
- Defines the health check
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from asset_diary.config import settings
from asset_diary.database import SessionLocal, create_tables, get_db
from asset_diary.dependencies import build_services
from asset_diary.middleware import CorrelationIdMiddleware
from asset_diary.routers import holdings_router, prices_router, valuation_router
from asset_diary.schemas.errors import ErrorDetail
from asset_diary.services.circuit_breaker import CircuitState
from asset_diary.services.exceptions import (
    InsufficientHoldingError,
    InvalidSymbolError,
    InvalidTradeError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    UserNotFoundError,
    ValidationError,
)
from asset_diary.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.is_sqlite:
        create_tables()

    services = build_services(settings, SessionLocal)
    app.state.services = services
    services.start()
    logger.info(f"{settings.app_name} started (environment={settings.environment})")

    try:
        yield
    finally:
        services.close()
        logger.info(f"{settings.app_name} stopped")


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Holdings and net worth across stocks, crypto and cash accounts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; they are mapped to status
# codes here. Starlette picks the handler of the most specific class in the
# exception's MRO, so subclasses registered below win over their parents.
# =============================================================================

@app.exception_handler(InvalidSymbolError)
async def invalid_symbol_handler(request: Request, exc: InvalidSymbolError) -> JSONResponse:
    """Handle unknown symbols (404)."""
    logger.warning(f"Invalid symbol: {exc.asset_class}/{exc.symbol}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="InvalidSymbolError",
            message=str(exc),
            details={"asset_class": exc.asset_class, "symbol": exc.symbol},
        ).model_dump(),
    )


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Handle upstream rate limiting (429)."""
    logger.warning(f"Rate limit exceeded: {exc}")
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return JSONResponse(
        status_code=429,
        content=ErrorDetail(
            error="RateLimitError",
            message=str(exc),
            details={"retry_after": exc.retry_after} if exc.retry_after else None,
        ).model_dump(),
        headers=headers,
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    """Handle unavailable price providers (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="ProviderUnavailableError",
            message=str(exc),
            details={"provider": exc.provider} if exc.provider else None,
        ).model_dump(),
    )


@app.exception_handler(InsufficientHoldingError)
async def insufficient_holding_handler(
    request: Request, exc: InsufficientHoldingError
) -> JSONResponse:
    """Handle ledgers that sell more than they hold (409)."""
    logger.warning(f"Insufficient holding: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error="InsufficientHoldingError",
            message=str(exc),
            details={
                "holding": exc.holding_key,
                "requested": str(exc.requested),
                "available": str(exc.available),
            },
        ).model_dump(),
    )


@app.exception_handler(InvalidTradeError)
async def invalid_trade_handler(request: Request, exc: InvalidTradeError) -> JSONResponse:
    """Handle unusable trades in the ledger (422)."""
    logger.warning(f"Invalid trade: {exc}")
    return JSONResponse(
        status_code=422,
        content=ErrorDetail(
            error="InvalidTradeError",
            message=str(exc),
            details={"trade_id": exc.trade_id} if exc.trade_id is not None else None,
        ).model_dump(),
    )


@app.exception_handler(UserNotFoundError)
async def user_not_found_handler(request: Request, exc: UserNotFoundError) -> JSONResponse:
    """Handle unknown users (404)."""
    logger.warning(f"User not found: {exc.user_id}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error="UserNotFoundError",
            message=str(exc),
            details={"user_id": exc.user_id},
        ).model_dump(),
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(prices_router)
app.include_router(holdings_router)
app.include_router(valuation_router)


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
def root():
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check.

    - 200 with "healthy" when the database answers and no provider circuit
      is open
    - 200 with "degraded" when a provider circuit is open
    - 503 with "unhealthy" when the database does not answer
    """
    checks = {}
    overall_status = "healthy"

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = {"status": "healthy", "critical": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = {"status": "unhealthy", "critical": True, "error": str(e)}
        overall_status = "unhealthy"

    services = getattr(request.app.state, "services", None)
    for provider in services.providers if services else []:
        breaker = provider.circuit_breaker
        if breaker is None:
            continue
        is_open = breaker.state == CircuitState.OPEN
        checks[provider.name] = {
            "status": "unhealthy" if is_open else "healthy",
            "critical": False,
            "circuit_breaker_state": breaker.state.value,
        }
        if is_open and overall_status == "healthy":
            overall_status = "degraded"

    response_data = {"status": overall_status, "checks": checks}
    if overall_status == "unhealthy":
        return JSONResponse(status_code=503, content=response_data)
    return response_data
