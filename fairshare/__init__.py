"""
FairShare - Shared Expense Ledger

Two participants log expenses; FairShare tallies who paid what and
computes the single transfer that evens things out.

DESIGN PRINCIPLES:
1. Aggregation is pure - recomputed from a snapshot on every call
2. Bad data degrades to safe defaults, never a crash
3. Collaborator data is normalized once, at the boundary
4. Storage is a swappable port
5. Every ledger mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "FairShare Team"
