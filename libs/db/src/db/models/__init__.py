"""Shared SQLAlchemy models registry for the workspace database.

Holds the household ledger tables used by ``household_ledger``.
"""

from .finance import Base, HlCategory, HlImport, HlRule, HlTransaction

__all__ = [
    "Base",
    "HlCategory",
    "HlImport",
    "HlRule",
    "HlTransaction",
]
