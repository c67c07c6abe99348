"""Ledger writes: committing candidates and maintaining account balances."""
