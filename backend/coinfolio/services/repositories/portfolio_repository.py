"""Portfolio and holding data access layer."""

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from coinfolio.models import Holding, Portfolio

from .exceptions import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class PortfolioRepository:
    """Centralized portfolio and holding data access.

    Naming conventions:
    - find_* : Query that may return None or empty list
    - get_* : Query that raises NotFoundError if missing
    - create_* : Insert new record
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_portfolio(self, user_id: str, portfolio_id: str) -> Portfolio | None:
        """Find a portfolio owned by the user."""
        return (
            self._db.query(Portfolio)
            .filter(Portfolio.id == portfolio_id, Portfolio.user_id == user_id)
            .first()
        )

    def get_portfolio(self, user_id: str, portfolio_id: str) -> Portfolio:
        """Get a portfolio owned by the user, raising NotFoundError otherwise."""
        portfolio = self.find_portfolio(user_id, portfolio_id)
        if portfolio is None:
            raise NotFoundError("Portfolio", portfolio_id)
        return portfolio

    def find_portfolios(self, user_id: str) -> "Sequence[Portfolio]":
        """Find all portfolios of a user."""
        return (
            self._db.query(Portfolio)
            .filter(Portfolio.user_id == user_id)
            .order_by(Portfolio.created_at)
            .all()
        )

    def create_portfolio(
        self, user_id: str, name: str, description: str | None = None, is_public: bool = False
    ) -> Portfolio:
        portfolio = Portfolio(
            user_id=user_id, name=name, description=description, is_public=is_public
        )
        self._db.add(portfolio)
        self._db.flush()
        logger.debug(f"Created portfolio {portfolio.id} for user {user_id}")
        return portfolio

    def find_holdings(self, user_id: str, portfolio_id: str | None = None) -> "Sequence[Holding]":
        """Find a user's holdings, optionally restricted to one portfolio."""
        query = self._db.query(Holding).filter(Holding.user_id == user_id)
        if portfolio_id:
            query = query.filter(Holding.portfolio_id == portfolio_id)
        return query.all()

    def find_user_ids_with_holdings(self) -> list[str]:
        """Distinct ids of users holding at least one coin."""
        rows = self._db.query(Holding.user_id).distinct().order_by(Holding.user_id).all()
        return [row[0] for row in rows]

    def get_holding(self, user_id: str, holding_id: int) -> Holding:
        """Get a holding owned by the user, raising NotFoundError otherwise."""
        holding = (
            self._db.query(Holding)
            .filter(Holding.id == holding_id, Holding.user_id == user_id)
            .first()
        )
        if holding is None:
            raise NotFoundError("Holding", holding_id)
        return holding

    def find_holding(self, portfolio_id: str, coin_id: str) -> Holding | None:
        """Find the holding of a coin in a portfolio."""
        return (
            self._db.query(Holding)
            .filter(Holding.portfolio_id == portfolio_id, Holding.coin_id == coin_id)
            .first()
        )

    def create_holding(
        self,
        portfolio: Portfolio,
        coin_id: str,
        symbol: str,
        quantity: Decimal,
        average_buy_price: Decimal,
        name: str | None = None,
    ) -> Holding:
        holding = Holding(
            portfolio_id=portfolio.id,
            user_id=portfolio.user_id,
            coin_id=coin_id,
            symbol=symbol.upper(),
            name=name,
            quantity=quantity,
            average_buy_price=average_buy_price,
        )
        self._db.add(holding)
        self._db.flush()
        return holding

    def delete_holding(self, holding: Holding) -> None:
        self._db.delete(holding)
        self._db.flush()
        logger.debug(f"Deleted holding {holding.id} ({holding.coin_id})")
