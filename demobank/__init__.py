"""
Demo Bank Account Core

Account aggregate with balance, limit and status invariants, an append-only
ledger of transactions and activities, and domain events for downstream
publication. All monetary values use Decimal.
"""

__version__ = "1.0.0"
