"""
Household Ledger - Source Package

Records daily household expenses against a small, user-editable
category list and keeps a running monthly total.

DESIGN PRINCIPLES:
1. One entry per category per day, positive amounts only
2. Saving a day replaces that day's ledger as a whole
3. Totals are always recomputed from storage, never patched
4. Failures become visible notices, never silent corrections
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
