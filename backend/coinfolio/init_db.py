"""Database initialization script with seed data."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from coinfolio.database import Base, SessionLocal, engine
from coinfolio.models import StakingPlan

logger = logging.getLogger(__name__)

STAKEABLE_COINS = ["bitcoin", "ethereum", "cardano", "solana", "polkadot", "avalanche-2"]

DEFAULT_PLANS = [
    {
        "name": "Flexible Staking",
        "description": "Stake your crypto with no lock-up period and withdraw anytime.",
        "apy": Decimal("4"),
        "lock_period_days": 0,
        "minimum_amount": Decimal("10"),
    },
    {
        "name": "Standard Staking",
        "description": "Lock your assets for 3 months and earn higher returns.",
        "apy": Decimal("8"),
        "lock_period_days": 90,
        "minimum_amount": Decimal("100"),
    },
    {
        "name": "Premium Staking",
        "description": "Maximum returns when you lock your assets for 12 months.",
        "apy": Decimal("12"),
        "lock_period_days": 365,
        "minimum_amount": Decimal("500"),
    },
]


def create_tables() -> None:
    """Create all database tables."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)


def seed_staking_plans(db: Session) -> int:
    """Insert the default staking plans that do not exist yet. Returns the number added."""
    existing = {name for (name,) in db.query(StakingPlan.name).all()}
    added = 0
    for plan in DEFAULT_PLANS:
        if plan["name"] in existing:
            continue
        db.add(StakingPlan(**plan, supported_coins=list(STAKEABLE_COINS), is_active=True))
        added += 1
    db.commit()
    logger.info(f"Seeded {added} staking plans")
    return added


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    create_tables()
    with SessionLocal() as db:
        seed_staking_plans(db)


if __name__ == "__main__":
    main()
