"""
ATM Ledger

An educational ATM simulator over a tiny single-file account ledger:
registration, PIN authentication, deposits, withdrawals, transfers and
a bounded per-account transaction history, persisted to a flat text store.
"""

__version__ = "1.0.0"
