"""
Finance Tracker - Core Package

The state layer of a personal finance tracker: budgets with categorized
expenses, assets and holdings, liabilities and a daily net-worth history.

DESIGN PRINCIPLES:
1. Pure reconcilers: old state + action -> new immutable state
2. One store owns the snapshot, persists it whole, notifies subscribers
3. Partial imports are reported, never silently fixed
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
