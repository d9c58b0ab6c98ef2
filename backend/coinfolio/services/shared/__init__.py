"""Shared building blocks used across services."""
