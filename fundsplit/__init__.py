"""
FundSplit

Merkle-committed distribution of auction proceeds:
- Inclusion-proof membership checks for beneficiaries
- Bit-packed anti-replay claim sets
- Fixed-point percentage to amount conversion
- Single-auction lifecycle that captures the distributable fund
"""

__version__ = "0.1.0"
