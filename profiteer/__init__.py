"""
Profiteer Reconciliation - Source Package

Balance reconciliation and historical reporting for a personal-finance
ledger of Physical and Logical wallets.

DESIGN PRINCIPLES:
1. Stores provide snapshots -> pure functions compute -> callers render
2. Fail early on bad input, never on bad data
3. No silent corrections: every excluded record is reported
4. Every check is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Profiteer Team"
