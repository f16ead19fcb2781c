"""
Money Manager - Source Package

A personal ledger that tracks money given to and taken from people,
keeps per-person balances, and backs everything up to a single JSON file.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Every write either fully lands or leaves the ledger untouched
3. Restore is destructive and must be explicitly confirmed
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Money Manager Team"
