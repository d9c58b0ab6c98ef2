"""Tests for LedgerService: transactions and their effect on holdings."""

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from coinfolio.models import Holding, Transaction
from coinfolio.services.exceptions import NotFoundError, UpstreamUnavailable, ValidationError
from coinfolio.services.portfolio import LedgerService
from coinfolio.services.portfolio.csv_import import decode_upload, read_rows
from coinfolio.services.portfolio.ledger_service import weighted_average_price


@pytest.fixture
def ledger(db, clock):
    return LedgerService(db, clock=clock)


def buy(ledger, portfolio, quantity, price, coin_id="bitcoin", symbol="btc", **kwargs):
    return ledger.record_transaction(
        "user-1",
        type="buy",
        coin_id=coin_id,
        symbol=symbol,
        quantity=Decimal(quantity),
        price=Decimal(price),
        portfolio_id=portfolio.id,
        **kwargs,
    )


def sell(ledger, portfolio, quantity, price, coin_id="bitcoin"):
    return ledger.record_transaction(
        "user-1",
        type="sell",
        coin_id=coin_id,
        symbol=coin_id[:3],
        quantity=Decimal(quantity),
        price=Decimal(price),
        portfolio_id=portfolio.id,
    )


class TestWeightedAverage:
    def test_weighted_average_price(self):
        assert weighted_average_price(
            Decimal("1"), Decimal("30000"), Decimal("1"), Decimal("50000")
        ) == Decimal("40000")

    def test_weighted_average_from_empty(self):
        assert weighted_average_price(
            Decimal("0"), Decimal("0"), Decimal("2"), Decimal("100")
        ) == Decimal("100")


class TestRecordTransaction:
    """Tests for record_transaction."""

    def test_first_buy_creates_holding(self, ledger, portfolio, db, clock):
        transaction = buy(ledger, portfolio, "0.5", "40000", name="Bitcoin")

        holding = db.query(Holding).one()
        assert holding.coin_id == "bitcoin"
        assert holding.symbol == "BTC"
        assert holding.quantity == Decimal("0.5")
        assert holding.average_buy_price == Decimal("40000")
        assert transaction.holding_id == holding.id
        assert transaction.symbol == "BTC"
        assert transaction.transaction_date == clock()
        assert transaction.total_amount == Decimal("20000")

    def test_second_buy_updates_weighted_average(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000")
        buy(ledger, portfolio, "1", "50000", fee=Decimal("25"))

        holding = db.query(Holding).one()
        assert holding.quantity == Decimal("2")
        assert holding.average_buy_price == Decimal("40000")  # Fee excluded

    def test_partial_sell_keeps_average(self, ledger, portfolio, db):
        buy(ledger, portfolio, "2", "30000")
        sell(ledger, portfolio, "0.5", "60000")

        holding = db.query(Holding).one()
        assert holding.quantity == Decimal("1.5")
        assert holding.average_buy_price == Decimal("30000")

    def test_full_sell_removes_holding(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000")
        transaction = sell(ledger, portfolio, "1", "35000")

        assert db.query(Holding).count() == 0
        assert transaction.holding_id is None
        assert db.query(Transaction).count() == 2

    def test_oversell_rejected(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000")

        with pytest.raises(ValidationError, match="only"):
            sell(ledger, portfolio, "1.5", "35000")

        assert db.query(Holding).one().quantity == Decimal("1")
        assert db.query(Transaction).count() == 1

    def test_sell_without_holding_rejected(self, ledger, portfolio):
        with pytest.raises(ValidationError):
            sell(ledger, portfolio, "1", "100", coin_id="ethereum")

    def test_transfer_is_recorded_only(self, ledger, db):
        transaction = ledger.record_transaction(
            "user-1",
            type="transfer",
            coin_id="ethereum",
            symbol="eth",
            quantity=Decimal("3"),
            price=Decimal("0"),
            note="to cold wallet",
        )

        assert transaction.id is not None
        assert transaction.portfolio_id is None
        assert db.query(Holding).count() == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"type": "swap"},
            {"quantity": Decimal("0")},
            {"quantity": Decimal("-1")},
            {"price": Decimal("-1")},
            {"fee": Decimal("-0.5")},
        ],
    )
    def test_invalid_input(self, ledger, portfolio, kwargs):
        params = {
            "type": "buy",
            "coin_id": "bitcoin",
            "symbol": "btc",
            "quantity": Decimal("1"),
            "price": Decimal("100"),
            "portfolio_id": portfolio.id,
        }
        params.update(kwargs)
        with pytest.raises(ValidationError):
            ledger.record_transaction("user-1", **params)

    def test_trade_requires_portfolio(self, ledger):
        with pytest.raises(ValidationError, match="requires a portfolio"):
            ledger.record_transaction(
                "user-1",
                type="buy",
                coin_id="bitcoin",
                symbol="btc",
                quantity=Decimal("1"),
                price=Decimal("100"),
            )

    def test_other_users_portfolio(self, ledger, portfolio):
        with pytest.raises(NotFoundError):
            ledger.record_transaction(
                "user-2",
                type="buy",
                coin_id="bitcoin",
                symbol="btc",
                quantity=Decimal("1"),
                price=Decimal("100"),
                portfolio_id=portfolio.id,
            )

    def test_store_failure_maps_to_upstream_unavailable(self, ledger, portfolio, db):
        with patch.object(db, "commit", side_effect=OperationalError("COMMIT", {}, Exception("disk I/O"))):
            with pytest.raises(UpstreamUnavailable):
                buy(ledger, portfolio, "1", "100")


class TestQueries:
    """Tests for portfolio and transaction listings."""

    def test_list_transactions_newest_first(self, ledger, portfolio):
        buy(ledger, portfolio, "1", "100", transaction_date=datetime(2026, 1, 1))
        buy(ledger, portfolio, "1", "200", transaction_date=datetime(2026, 3, 1))
        buy(ledger, portfolio, "1", "150", transaction_date=datetime(2026, 2, 1))

        prices = [t.price for t in ledger.list_transactions("user-1")]
        assert prices == [Decimal("200"), Decimal("150"), Decimal("100")]
        assert len(ledger.list_transactions("user-1", limit=2)) == 2
        assert ledger.list_transactions("user-2") == []

    def test_create_and_list_portfolios(self, ledger):
        ledger.create_portfolio("user-9", "Long term", "HODL")
        ledger.create_portfolio("user-9", "Trading")

        names = [p.name for p in ledger.list_portfolios("user-9")]
        assert sorted(names) == ["Long term", "Trading"]


class TestHoldingEdits:
    """Tests for direct holding edits and removal."""

    def test_update_records_adjustment_buy(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000", name="Bitcoin")
        holding = db.query(Holding).one()

        updated = ledger.update_holding("user-1", holding.id, Decimal("1.5"), Decimal("32000"))

        assert updated.quantity == Decimal("1.5")
        assert updated.average_buy_price == Decimal("32000")
        adjustment = ledger.list_transactions("user-1")[0]
        assert adjustment.type == "buy"
        assert adjustment.quantity == Decimal("0.5")
        assert adjustment.price == Decimal("32000")
        assert adjustment.note == "Holding adjustment - Bitcoin"

    def test_update_lower_quantity_records_sell(self, ledger, portfolio, db):
        buy(ledger, portfolio, "2", "30000")
        holding = db.query(Holding).one()

        ledger.update_holding("user-1", holding.id, Decimal("0.5"), Decimal("30000"))

        adjustment = ledger.list_transactions("user-1")[0]
        assert adjustment.type == "sell"
        assert adjustment.quantity == Decimal("1.5")

    def test_update_price_only_adds_no_transaction(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000")
        holding = db.query(Holding).one()

        ledger.update_holding("user-1", holding.id, Decimal("1"), Decimal("25000"))

        assert db.query(Transaction).count() == 1
        assert db.query(Holding).one().average_buy_price == Decimal("25000")

    @pytest.mark.parametrize(("quantity", "price"), [("0", "100"), ("1", "0"), ("-1", "100")])
    def test_update_rejects_non_positive(self, ledger, portfolio, db, quantity, price):
        buy(ledger, portfolio, "1", "30000")
        holding = db.query(Holding).one()

        with pytest.raises(ValidationError):
            ledger.update_holding("user-1", holding.id, Decimal(quantity), Decimal(price))

    def test_update_other_users_holding(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "30000")
        holding = db.query(Holding).one()

        with pytest.raises(NotFoundError):
            ledger.update_holding("user-2", holding.id, Decimal("2"), Decimal("1"))

    def test_delete_records_closing_sell(self, ledger, portfolio, db):
        buy(ledger, portfolio, "0.75", "40000")
        holding = db.query(Holding).one()

        closing = ledger.delete_holding("user-1", holding.id)

        assert db.query(Holding).count() == 0
        assert closing.type == "sell"
        assert closing.quantity == Decimal("0.75")
        assert closing.price == Decimal("40000")  # Average buy price
        assert closing.holding_id is None

    def test_delete_at_given_price(self, ledger, portfolio, db):
        buy(ledger, portfolio, "1", "40000")
        holding = db.query(Holding).one()

        closing = ledger.delete_holding("user-1", holding.id, price=Decimal("45000"))

        assert closing.total_amount == Decimal("45000")

    def test_delete_missing_holding(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.delete_holding("user-1", 999)


IMPORT_CSV = """Symbol,Quantity,Price,Date
BTC,0.5,40000,2024-01-01
ETH,-1,3000,2024-01-02
,1,1,2024-01-01
SOL,10,100,not-a-date
eth,2,3000,2024-01-03T10:00:00
"""


class TestCsvImport:
    """Tests for importing buys from CSV."""

    def test_valid_rows_imported_bad_rows_reported(self, ledger, portfolio, db):
        result = ledger.import_csv("user-1", portfolio.id, IMPORT_CSV)

        assert result.imported == 2
        assert result.failed == 3
        assert result.errors == [
            "Line 3 (ETH): Invalid quantity",
            "Line 4 (?): Missing symbol",
            "Line 5 (SOL): Invalid date",
        ]
        holdings = {h.coin_id: h for h in db.query(Holding).all()}
        assert holdings["bitcoin"].quantity == Decimal("0.5")
        assert holdings["ethereum"].symbol == "ETH"
        assert holdings["ethereum"].average_buy_price == Decimal("3000")

    def test_imported_transactions_keep_row_dates(self, ledger, portfolio):
        ledger.import_csv("user-1", portfolio.id, IMPORT_CSV)

        dates = sorted(t.transaction_date for t in ledger.list_transactions("user-1"))
        assert dates == [datetime(2024, 1, 1), datetime(2024, 1, 3, 10, 0)]
        assert all(t.note.startswith("CSV import - ") for t in ledger.list_transactions("user-1"))

    def test_missing_columns_rejected(self, ledger, portfolio, db):
        with pytest.raises(ValidationError, match="price, date"):
            ledger.import_csv("user-1", portfolio.id, "symbol,quantity\nBTC,1\n")
        assert db.query(Transaction).count() == 0

    def test_other_users_portfolio(self, ledger, portfolio):
        with pytest.raises(NotFoundError):
            ledger.import_csv("user-2", portfolio.id, IMPORT_CSV)


class TestCsvParsing:
    def test_decode_upload_strips_bom(self):
        assert decode_upload(b"\xef\xbb\xbfsymbol") == "symbol"

    def test_decode_upload_falls_back_to_latin1(self):
        assert decode_upload(b"caf\xe9") == "caf\u00e9"

    def test_blank_rows_skipped(self):
        rows = read_rows("symbol,quantity,price,date\nBTC,1,1,2024-01-01\n,,,\n")
        assert [line for line, _ in rows] == [2]
