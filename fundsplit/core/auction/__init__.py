"""
FundSplit Auction Module.

This module provides the single-auction lifecycle of a distribution
instance and an in-memory auction service:
- AuctionService capability interface
- AuctionLifecycle state machine (create, approve, reserve, end, cancel)
- ReserveAuctionHouse reference service
"""

from fundsplit.core.auction.lifecycle import (
    AuctionLifecycle,
    AuctionPhase,
    AuctionService,
)

from fundsplit.core.auction.house import (
    Auction,
    ReserveAuctionHouse,
    MIN_BID_INCREMENT_PERCENT,
    TIME_BUFFER,
)

__all__ = [
    # Lifecycle
    "AuctionLifecycle",
    "AuctionPhase",
    "AuctionService",
    # House
    "Auction",
    "ReserveAuctionHouse",
    "MIN_BID_INCREMENT_PERCENT",
    "TIME_BUFFER",
]
