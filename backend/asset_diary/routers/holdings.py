# backend/asset_diary/routers/holdings.py
"""
Holdings endpoint.

- GET /users/{user_id}/holdings - Open positions derived from the trade
  ledger (FIFO), valued at current prices
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from asset_diary.database import get_db
from asset_diary.dependencies import get_holdings_service
from asset_diary.schemas.holdings import HoldingResponse, HoldingsResponse
from asset_diary.services.holdings import HoldingsService

router = APIRouter(
    prefix="/users",
    tags=["Holdings"],
)


@router.get(
    "/{user_id}/holdings",
    response_model=HoldingsResponse,
    summary="List current holdings",
)
def list_holdings(
        user_id: int,
        db: Session = Depends(get_db),
        service: HoldingsService = Depends(get_holdings_service),
) -> HoldingsResponse:
    """
    Current holdings of a user.

    A holding whose price cannot be fetched is still returned with a price
    of 0 and `price_available: false`. Holdings in a currency without a
    stored exchange rate have `total_value_in_display_currency: null`.

    Raises **404** for an unknown user and **409** when the ledger sells
    more than was bought.
    """
    result = service.list_holdings(db, user_id)

    return HoldingsResponse(
        user_id=result.user_id,
        display_currency=result.display_currency,
        holdings=[HoldingResponse.model_validate(h) for h in result.holdings],
        total_value_in_display_currency=result.total_value_in_display_currency,
        warnings=result.warnings,
    )
