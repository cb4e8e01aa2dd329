"""Chatalog - chat transcript import and coverage reconciliation."""

__version__ = "0.1.0"
