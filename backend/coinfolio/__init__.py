"""Coinfolio: crypto portfolio valuation and staking backend."""

__version__ = "0.1.0"
