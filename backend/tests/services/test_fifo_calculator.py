# backend/tests/services/test_fifo_calculator.py
"""
Tests for FIFO lot matching.

This module tests:
- LotLedger buy/sell mechanics and cost basis
- Full close resets the basis
- Oversell and invalid trades
- Grouping by (asset_class, ticker, currency)
- Replay order by trade date
"""

from dataclasses import replace
from datetime import datetime
from decimal import Decimal

import pytest

from asset_diary.models import AssetClass, TradeType
from asset_diary.services.exceptions import InsufficientHoldingError, InvalidTradeError
from asset_diary.services.holdings.calculators import FifoHoldingsCalculator, LotLedger
from asset_diary.services.holdings.types import HoldingKey, TradeRecord
from tests.conftest import make_trade

BUY = TradeType.BUY
SELL = TradeType.SELL

AAPL = HoldingKey(AssetClass.STOCK, "AAPL", "USD")


@pytest.fixture
def calc() -> FifoHoldingsCalculator:
    return FifoHoldingsCalculator()


# =============================================================================
# LOT LEDGER
# =============================================================================

class TestLotLedger:
    """Tests for the single-key ledger."""

    def test_buy_accumulates_quantity_and_cost(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("10"), Decimal("100"))
        ledger.buy(Decimal("5"), Decimal("200"))

        assert ledger.quantity == Decimal("15")
        assert ledger.total_cost == Decimal("2000")
        assert len(ledger.lots) == 2

    def test_sell_consumes_oldest_lot_first(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("10"), Decimal("100"))
        ledger.buy(Decimal("5"), Decimal("200"))
        ledger.sell(Decimal("5"))

        lots = ledger.lots
        assert [(lot.quantity, lot.unit_cost) for lot in lots] == [
            (Decimal("5"), Decimal("100")),
            (Decimal("5"), Decimal("200")),
        ]
        assert ledger.total_cost == Decimal("1500")

    def test_sell_spanning_lots(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("3"), Decimal("10"))
        ledger.buy(Decimal("3"), Decimal("20"))
        ledger.sell(Decimal("4"))

        assert ledger.quantity == Decimal("2")
        assert ledger.total_cost == Decimal("40")
        assert ledger.average_cost == Decimal("20")
        assert len(ledger.lots) == 1

    def test_full_close_resets_cost(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("8"), Decimal("96.57"))
        ledger.sell(Decimal("8"))

        assert ledger.quantity == Decimal("0")
        assert ledger.total_cost == Decimal("0")
        assert ledger.average_cost == Decimal("0")
        assert ledger.lots == []

    def test_oversell_raises_without_mutation(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("2"), Decimal("50"))

        with pytest.raises(InsufficientHoldingError) as exc_info:
            ledger.sell(Decimal("3"))

        assert exc_info.value.shortfall == Decimal("1")
        assert exc_info.value.holding_key == "stock/AAPL/USD"
        assert ledger.quantity == Decimal("2")
        assert ledger.total_cost == Decimal("100")

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_non_positive_quantity_rejected(self, quantity):
        ledger = LotLedger(AAPL)
        with pytest.raises(InvalidTradeError):
            ledger.buy(Decimal(quantity), Decimal("1"))
        with pytest.raises(InvalidTradeError):
            ledger.sell(Decimal(quantity))

    def test_negative_price_rejected(self):
        ledger = LotLedger(AAPL)
        with pytest.raises(InvalidTradeError):
            ledger.buy(Decimal("1"), Decimal("-5"))

    def test_lots_returns_copies(self):
        ledger = LotLedger(AAPL)
        ledger.buy(Decimal("1"), Decimal("5"))
        ledger.lots[0].quantity = Decimal("99")

        assert ledger.quantity == Decimal("1")
        assert ledger.lots[0].quantity == Decimal("1")


# =============================================================================
# CALCULATOR
# =============================================================================

class TestFifoHoldingsCalculator:
    """Tests for grouping and replay."""

    def test_partial_sell_average_cost(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "10", "100", day=1),
            make_trade(BUY, "AAPL", "5", "200", day=2),
            make_trade(SELL, "AAPL", "5", "300", day=3),
        ]

        position = calc.calculate(trades)[AAPL]

        assert position.quantity == Decimal("10")
        assert position.total_cost == Decimal("1500")
        assert position.average_cost == Decimal("150")

    def test_rebuy_after_full_close_starts_fresh_basis(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "8", "96.57", day=1),
            make_trade(SELL, "AAPL", "8", "120", day=2),
            make_trade(BUY, "AAPL", "3", "155", day=3),
        ]

        position = calc.calculate(trades)[AAPL]

        assert position.quantity == Decimal("3")
        assert position.average_cost == Decimal("155")
        assert position.total_cost == Decimal("465")

    def test_closed_positions_are_dropped(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "1", "100", day=1),
            make_trade(SELL, "AAPL", "1", "110", day=2),
        ]

        assert calc.calculate(trades) == {}

    def test_empty_ledger(self, calc):
        assert calc.calculate([]) == {}

    def test_same_ticker_in_two_currencies_is_two_holdings(self, calc):
        trades = [
            make_trade(BUY, "TSM", "2", "100", currency="USD"),
            make_trade(BUY, "TSM", "3", "3000", currency="TWD"),
        ]

        positions = calc.calculate(trades)

        assert set(positions) == {
            HoldingKey(AssetClass.STOCK, "TSM", "USD"),
            HoldingKey(AssetClass.STOCK, "TSM", "TWD"),
        }

    def test_same_symbol_in_two_asset_classes_is_two_holdings(self, calc):
        trades = [
            make_trade(BUY, "ETH", "1", "10", asset_class=AssetClass.STOCK),
            make_trade(BUY, "ETH", "1", "3000", asset_class=AssetClass.CRYPTO),
        ]

        assert len(calc.calculate(trades)) == 2

    def test_ticker_and_currency_are_normalized(self, calc):
        trades = [
            make_trade(BUY, " aapl ", "1", "100", currency="usd"),
            make_trade(BUY, "AAPL", "1", "200", currency="USD"),
        ]

        positions = calc.calculate(trades)

        assert list(positions) == [AAPL]
        assert positions[AAPL].quantity == Decimal("2")

    def test_string_trade_type_and_asset_class_accepted(self, calc):
        trades = [make_trade("buy", "BTC", "0.5", "40000", asset_class="crypto")]

        positions = calc.calculate(trades)

        assert HoldingKey(AssetClass.CRYPTO, "BTC", "USD") in positions

    def test_float_ledger_closes_exactly(self, calc):
        def float_trade(trade_type, quantity, day):
            return TradeRecord(
                trade_type=trade_type,
                asset_class=AssetClass.CRYPTO,
                ticker="BTC",
                quantity=quantity,
                price=100.0,
                currency="USD",
                trade_date=datetime(2024, 1, day),
            )

        trades = [float_trade(BUY, 0.3, 1), float_trade(SELL, 0.1, 2), float_trade(SELL, 0.2, 3)]

        assert calc.calculate(trades) == {}

    def test_float_price_keeps_decimal_cost(self, calc):
        trade = replace(make_trade(BUY, "AAPL", "3", "0"), price=0.1)

        position = calc.calculate([trade])[AAPL]

        assert position.total_cost == Decimal("0.3")

    def test_trades_replayed_by_trade_date(self, calc):
        # Ledger order has the sell first; by date it comes after the buy
        trades = [
            make_trade(SELL, "AAPL", "4", "150", day=5),
            make_trade(BUY, "AAPL", "10", "100", day=1),
        ]

        position = calc.calculate(trades)[AAPL]

        assert position.quantity == Decimal("6")
        assert position.total_cost == Decimal("600")

    def test_same_date_keeps_ledger_order(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "1", "100", day=1),
            make_trade(BUY, "AAPL", "1", "200", day=1),
            make_trade(SELL, "AAPL", "1", "300", day=1),
        ]

        position = calc.calculate(trades)[AAPL]

        assert position.total_cost == Decimal("200")

    def test_oversell_aborts_calculation(self, calc):
        trades = [
            make_trade(BUY, "MSFT", "5", "300", day=1),
            make_trade(BUY, "AAPL", "1", "100", day=1),
            make_trade(SELL, "AAPL", "2", "110", day=2),
        ]

        with pytest.raises(InsufficientHoldingError):
            calc.calculate(trades)

    def test_sell_without_buy_raises(self, calc):
        with pytest.raises(InsufficientHoldingError):
            calc.calculate([make_trade(SELL, "AAPL", "1", "100")])

    def test_unknown_trade_type_raises(self, calc):
        with pytest.raises(InvalidTradeError) as exc_info:
            calc.calculate([make_trade("dividend", "AAPL", "1", "100", trade_id=7)])

        assert exc_info.value.trade_id == 7

    def test_unknown_asset_class_raises(self, calc):
        with pytest.raises(InvalidTradeError):
            calc.calculate([make_trade(BUY, "GOLD", "1", "100", asset_class="commodity")])

    def test_ticker_name_taken_from_latest_trade(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "1", "100", day=1, ticker_name="Apple"),
            make_trade(BUY, "AAPL", "1", "100", day=2, ticker_name="Apple Inc."),
        ]

        assert calc.calculate(trades)[AAPL].ticker_name == "Apple Inc."

    def test_position_invariants_hold(self, calc):
        trades = [
            make_trade(BUY, "AAPL", "3", "10", day=1),
            make_trade(BUY, "AAPL", "4", "12.5", day=2),
            make_trade(SELL, "AAPL", "5", "20", day=3),
            make_trade(BUY, "AAPL", "2", "11", day=4),
        ]

        position = calc.calculate(trades)[AAPL]

        assert position.quantity == sum(lot.quantity for lot in position.lots)
        assert position.total_cost == sum(lot.quantity * lot.unit_cost for lot in position.lots)
        assert position.average_cost == position.total_cost / position.quantity
