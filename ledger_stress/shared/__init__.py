"""Helpers shared across the harness."""
