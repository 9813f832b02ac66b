"""
Cashbook - Source Package

A personal finance tracker: accounts, ledgers of validated and potential
transactions, and recurring rules that keep the near future filled in.

DESIGN PRINCIPLES:
1. The recurrence engine is pure: it mutates ledgers, never storage
2. Generated entries are never duplicated, however often the engine runs
3. Validated history is never deleted by automation
4. Every mutation is persisted as a whole snapshot
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Cashbook Team"
