"""Crypto news provider client."""
