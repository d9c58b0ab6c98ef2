"""Transaction ledger - records trades and applies them to holdings.

Transactions are append-only. A buy moves the holding's average buy price to
the quantity-weighted average; a sell reduces quantity and removes the holding
once it reaches zero. Transfers are recorded without touching holdings. Fees
are stored on the transaction and do not enter the average buy price. Direct
holding edits and removals are mirrored by adjustment transactions.
"""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from coinfolio.constants import TransactionType
from coinfolio.models import Holding, Portfolio, Transaction
from coinfolio.services.exceptions import UpstreamUnavailable, ValidationError
from coinfolio.services.portfolio import csv_import
from coinfolio.services.portfolio.csv_import import CsvImportResult
from coinfolio.services.repositories import PortfolioRepository, TransactionRepository
from coinfolio.services.shared.clock import Clock, utc_now

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def weighted_average_price(
    quantity: Decimal, average_price: Decimal, added_quantity: Decimal, price: Decimal
) -> Decimal:
    total = quantity + added_quantity
    if total == ZERO:
        return ZERO
    return (quantity * average_price + added_quantity * price) / total


class LedgerService:
    def __init__(self, db: Session, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock
        self._portfolios = PortfolioRepository(db)
        self._transactions = TransactionRepository(db)

    def create_portfolio(
        self, user_id: str, name: str, description: str | None = None, is_public: bool = False
    ) -> Portfolio:
        try:
            portfolio = self._portfolios.create_portfolio(user_id, name, description, is_public)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to create portfolio for {user_id}: {e}")
            raise UpstreamUnavailable("Could not save portfolio") from e
        return portfolio

    def list_portfolios(self, user_id: str) -> list[Portfolio]:
        return list(self._portfolios.find_portfolios(user_id))

    def list_transactions(
        self, user_id: str, portfolio_id: str | None = None, limit: int | None = None
    ) -> list[Transaction]:
        """A user's transactions, newest first."""
        return list(self._transactions.find_by_user(user_id, portfolio_id=portfolio_id, limit=limit))

    def record_transaction(
        self,
        user_id: str,
        *,
        type: str,
        coin_id: str,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        fee: Decimal = ZERO,
        note: str | None = None,
        portfolio_id: str | None = None,
        transaction_date: datetime | None = None,
        name: str | None = None,
    ) -> Transaction:
        """Append a transaction and apply its effect on the portfolio's holding.

        Raises:
            ValidationError: Unknown type, non-positive quantity, negative price or
                fee, missing portfolio for a trade, or selling more than is held.
            NotFoundError: The portfolio does not belong to the user.
            UpstreamUnavailable: The store rejected the write.
        """
        self._validate(type, quantity, price, fee)
        if type != TransactionType.TRANSFER and not portfolio_id:
            raise ValidationError(f"A {type} transaction requires a portfolio")

        portfolio = self._portfolios.get_portfolio(user_id, portfolio_id) if portfolio_id else None

        try:
            holding = None
            if type == TransactionType.BUY:
                holding = self._apply_buy(portfolio, coin_id, symbol, quantity, price, name)
            elif type == TransactionType.SELL:
                holding = self._apply_sell(portfolio, coin_id, quantity)

            transaction = self._transactions.add(
                Transaction(
                    user_id=user_id,
                    portfolio_id=portfolio.id if portfolio else None,
                    holding_id=holding.id if holding is not None and holding.quantity > ZERO else None,
                    type=type,
                    coin_id=coin_id,
                    symbol=symbol.upper(),
                    quantity=quantity,
                    price=price,
                    fee=fee,
                    note=note,
                    transaction_date=transaction_date or self._clock(),
                )
            )
            if holding is not None and holding.quantity == ZERO:
                self._portfolios.delete_holding(holding)
            self._db.commit()
        except ValidationError:
            self._db.rollback()
            raise
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to record {type} of {coin_id} for {user_id}: {e}")
            raise UpstreamUnavailable("Could not save transaction") from e

        logger.info(f"Recorded {type} {quantity} {coin_id} for user {user_id}")
        return transaction

    @staticmethod
    def _validate(type: str, quantity: Decimal, price: Decimal, fee: Decimal) -> None:
        if type not in TransactionType.ALL:
            raise ValidationError(f"Unknown transaction type: {type}")
        if quantity <= ZERO:
            raise ValidationError("Quantity must be positive")
        if price < ZERO:
            raise ValidationError("Price cannot be negative")
        if fee < ZERO:
            raise ValidationError("Fee cannot be negative")

    def _apply_buy(
        self,
        portfolio: Portfolio,
        coin_id: str,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        name: str | None,
    ) -> Holding:
        holding = self._portfolios.find_holding(portfolio.id, coin_id)
        if holding is None:
            return self._portfolios.create_holding(portfolio, coin_id, symbol, quantity, price, name)

        holding.average_buy_price = weighted_average_price(
            holding.quantity, holding.average_buy_price, quantity, price
        )
        holding.quantity += quantity
        return holding

    def _apply_sell(self, portfolio: Portfolio, coin_id: str, quantity: Decimal) -> Holding:
        holding = self._portfolios.find_holding(portfolio.id, coin_id)
        held = holding.quantity if holding else ZERO
        if quantity > held:
            raise ValidationError(f"Cannot sell {quantity} {coin_id}: only {held} held")
        holding.quantity -= quantity
        return holding

    def update_holding(
        self, user_id: str, holding_id: int, quantity: Decimal, average_buy_price: Decimal
    ) -> Holding:
        """Set a holding's quantity and average buy price directly.

        A quantity change is recorded as a buy or sell of the difference at the
        new average price, so the ledger still explains the position.

        Raises:
            ValidationError: Non-positive quantity or average buy price.
            NotFoundError: The holding does not belong to the user.
            UpstreamUnavailable: The store rejected the write.
        """
        if quantity <= ZERO:
            raise ValidationError("Quantity must be positive")
        if average_buy_price <= ZERO:
            raise ValidationError("Average buy price must be positive")

        holding = self._portfolios.get_holding(user_id, holding_id)
        difference = quantity - holding.quantity
        try:
            holding.quantity = quantity
            holding.average_buy_price = average_buy_price
            if difference != ZERO:
                self._transactions.add(
                    Transaction(
                        user_id=user_id,
                        portfolio_id=holding.portfolio_id,
                        holding_id=holding.id,
                        type=TransactionType.BUY if difference > ZERO else TransactionType.SELL,
                        coin_id=holding.coin_id,
                        symbol=holding.symbol,
                        quantity=abs(difference),
                        price=average_buy_price,
                        fee=ZERO,
                        note=f"Holding adjustment - {holding.name or holding.symbol}",
                        transaction_date=self._clock(),
                    )
                )
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to update holding {holding_id} for {user_id}: {e}")
            raise UpstreamUnavailable("Could not save holding") from e

        logger.info(f"User {user_id} set holding {holding_id} to {quantity} @ {average_buy_price}")
        return holding

    def delete_holding(
        self, user_id: str, holding_id: int, price: Decimal | None = None
    ) -> Transaction:
        """Remove a holding and record a sell of its remaining quantity.

        ``price`` defaults to the holding's average buy price.
        """
        if price is not None and price < ZERO:
            raise ValidationError("Price cannot be negative")

        holding = self._portfolios.get_holding(user_id, holding_id)
        try:
            transaction = self._transactions.add(
                Transaction(
                    user_id=user_id,
                    portfolio_id=holding.portfolio_id,
                    holding_id=None,
                    type=TransactionType.SELL,
                    coin_id=holding.coin_id,
                    symbol=holding.symbol,
                    quantity=holding.quantity,
                    price=holding.average_buy_price if price is None else price,
                    fee=ZERO,
                    note=f"Holding removed - {holding.name or holding.symbol}",
                    transaction_date=self._clock(),
                )
            )
            self._portfolios.delete_holding(holding)
            self._db.commit()
        except SQLAlchemyError as e:
            self._db.rollback()
            logger.error(f"Failed to delete holding {holding_id} for {user_id}: {e}")
            raise UpstreamUnavailable("Could not delete holding") from e

        logger.info(f"User {user_id} removed holding {holding_id} ({transaction.coin_id})")
        return transaction

    def import_csv(self, user_id: str, portfolio_id: str, text: str) -> CsvImportResult:
        """Record one buy per valid CSV row in ``portfolio_id``.

        Rows are committed one at a time; a bad row is reported in the result
        and does not undo the rows before it.

        Raises:
            ValidationError: The header lacks a required column.
            NotFoundError: The portfolio does not belong to the user.
            UpstreamUnavailable: The store rejected a write; earlier rows stay.
        """
        self._portfolios.get_portfolio(user_id, portfolio_id)
        result = CsvImportResult()

        for line_number, row in csv_import.read_rows(text):
            try:
                trade = csv_import.parse_row(row, line_number)
                self.record_transaction(
                    user_id,
                    type=TransactionType.BUY,
                    coin_id=trade.coin_id,
                    symbol=trade.symbol,
                    quantity=trade.quantity,
                    price=trade.price,
                    note=f"CSV import - {trade.symbol}",
                    portfolio_id=portfolio_id,
                    transaction_date=trade.date,
                )
            except ValidationError as e:
                symbol = (row.get("symbol") or "").strip() or "?"
                result.failed += 1
                result.errors.append(f"Line {line_number} ({symbol}): {e.message}")
                continue
            result.imported += 1

        logger.info(
            f"CSV import for {user_id} into {portfolio_id}: "
            f"{result.imported} imported, {result.failed} failed"
        )
        return result
