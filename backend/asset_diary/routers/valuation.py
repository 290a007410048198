# backend/asset_diary/routers/valuation.py
"""
Net worth endpoints.

- GET /users/{user_id}/net-worth - Holdings plus account balances in the
  user's display currency
- GET /users/{user_id}/net-worth/history - Stored daily snapshots

Snapshots are written by the daily job (scripts/record_daily_values.py),
not by these endpoints.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from asset_diary.database import get_db
from asset_diary.dependencies import get_valuation_service
from asset_diary.schemas.holdings import HoldingResponse
from asset_diary.schemas.valuation import (
    DailyValueResponse,
    NetWorthHistoryResponse,
    NetWorthResponse,
)
from asset_diary.services.valuation import TotalValuation, ValuationService

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/users",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_valuation(valuation: TotalValuation) -> NetWorthResponse:
    return NetWorthResponse(
        user_id=valuation.user_id,
        currency=valuation.currency,
        total_value=valuation.total_value,
        holdings_value=valuation.holdings_value,
        accounts_value=valuation.accounts_value,
        holdings=[HoldingResponse.model_validate(h) for h in valuation.holdings],
        skipped_currencies=valuation.skipped_currencies,
        warnings=valuation.warnings,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{user_id}/net-worth",
    response_model=NetWorthResponse,
    summary="Get current net worth",
)
def get_net_worth(
        user_id: int,
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> NetWorthResponse:
    """
    Total value of holdings and accounts in the user's display currency.

    Items in a currency with no stored exchange rate are left out of the
    totals and listed in `skipped_currencies`.
    """
    valuation = service.valuate_user(db, user_id)
    return _map_valuation(valuation)


@router.get(
    "/{user_id}/net-worth/history",
    response_model=NetWorthHistoryResponse,
    summary="Get net worth history",
)
def get_net_worth_history(
        user_id: int,
        start_date: date = Query(..., description="First day (inclusive)"),
        end_date: date = Query(..., description="Last day (inclusive)"),
        db: Session = Depends(get_db),
        service: ValuationService = Depends(get_valuation_service),
) -> NetWorthHistoryResponse:
    """
    Daily net worth snapshots between two dates, oldest first.

    Raises **400** if `start_date` is after `end_date`.
    """
    values = service.get_daily_values(db, user_id, start_date, end_date)

    return NetWorthHistoryResponse(
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        values=[DailyValueResponse.model_validate(v) for v in values],
    )
