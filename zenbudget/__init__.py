"""
ZenBudget - Source Package

A personal budget tracker built around daily carry-over: whatever is
left of a month's budget rolls into the next month, within a year.

DESIGN PRINCIPLES:
1. The budget engine is pure: same document in, same numbers out
2. Edits never mutate a document; they produce a new one
3. Storage and AI are optional; the numbers never depend on them
4. Every edit must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "ZenBudget Team"
