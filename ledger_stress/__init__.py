"""Stress test harness for the ledger transactions/statement API."""

__version__ = "0.1.0"
