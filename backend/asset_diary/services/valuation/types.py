# backend/asset_diary/services/valuation/types.py
"""
Internal data types for the Valuation Service.

Not Pydantic schemas; those are in asset_diary/schemas/valuation.py.

Type Hierarchy:
    ValuedItem         - One amount that contributes to net worth
    TotalValuation     - Net worth of one user in their display currency
    SnapshotRunResult  - Outcome of a daily snapshot run over all users
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from asset_diary.services.holdings.types import Holding


@dataclass(frozen=True)
class ValuedItem:
    """
    An amount in its own currency, before conversion.

    Attributes:
        source: "holding" or "account"
        label: Ticker or account name (for warnings and logs)
    """

    source: str
    label: str
    amount: Decimal
    currency: str


@dataclass
class TotalValuation:
    """
    Net worth of one user.

    Attributes:
        total_value: holdings_value + accounts_value, in `currency`
        skipped_currencies: Currencies whose items were left out for lack of
            a usable exchange rate
        warnings: Human-readable degradations (missing rates, missing prices)
    """

    user_id: int
    currency: str
    total_value: Decimal
    holdings_value: Decimal
    accounts_value: Decimal
    holdings: list[Holding] = field(default_factory=list)
    skipped_currencies: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.skipped_currencies


@dataclass
class SnapshotRunResult:
    """Outcome of record_all_users(): who was recorded, who failed and why."""

    snapshot_date: date
    recorded: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed
