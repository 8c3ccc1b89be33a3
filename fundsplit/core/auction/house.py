"""
Reserve Auction House - in-memory auction service.

A reference implementation of the AuctionService interface, modelled on
reserve-price English auctions for single collectibles:

1. The token owner approves the house and creates an auction; the house
   takes custody of the item.
2. If a curator is named, the curator must approve the auction before it
   accepts bids. Without a curator it is approved at creation.
3. The first bid at or above the reserve price starts the clock. Each new
   bid must beat the previous one by MIN_BID_INCREMENT_PERCENT; the
   previous bidder is refunded. Bids landing within TIME_BUFFER of the end
   extend the auction.
4. After expiry anyone may end the auction: the item goes to the winner,
   the curator takes its fee, the token owner receives the rest.
5. Before the first bid the owner or curator may cancel; the item returns
   to the owner.

Settled and cancelled auctions are removed, so a second end or cancel for
the same id is rejected.
"""

import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from fundsplit.core.auction.lifecycle import AuctionService
from fundsplit.core.errors import AuctionServiceError
from fundsplit.core.state.journal import Journal
from fundsplit.crypto import ADDRESS_SIZE, ZERO_ADDRESS, keccak256, short_hex
from fundsplit.utils.logger import get_logger

logger = get_logger("auction.house")


# =============================================================================
# Constants
# =============================================================================

# Extension window for late bids (seconds)
TIME_BUFFER = 15 * 60

# Minimum raise over the previous bid (percent)
MIN_BID_INCREMENT_PERCENT = 5


# =============================================================================
# Data Structures
# =============================================================================


@dataclass(frozen=True)
class Auction:
    """
    One auction held by the house.

    Frozen: every change replaces the record so it can be journaled.
    """
    auction_id: int
    token_id: int
    token_contract: Any
    token_owner: bytes
    currency: Any
    duration: int
    reserve_price: int
    curator: bytes
    curator_fee_percent: int
    approved: bool = False
    amount: int = 0
    bidder: bytes = ZERO_ADDRESS
    first_bid_time: int = 0

    @property
    def started(self) -> bool:
        return self.first_bid_time != 0

    @property
    def ends_at(self) -> Optional[int]:
        if not self.started:
            return None
        return self.first_bid_time + self.duration


class ReserveAuctionHouse(AuctionService):
    """
    In-memory reserve auction service.

    Attributes:
        address: 20-byte identity of the house (custodian of items and bids)
        auctions: auction_id -> Auction (live auctions only)
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        journal: Journal,
        address: Optional[bytes] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.journal = journal
        self.address = address or keccak256(b"fundsplit.ReserveAuctionHouse")[-ADDRESS_SIZE:]
        self.clock = clock or (lambda: int(time.time()))
        self.auctions: Dict[int, Auction] = {}
        self._next_id = 1

    # =========================================================================
    # Internal State
    # =========================================================================

    def _put(self, auction: Optional[Auction], auction_id: int) -> None:
        previous = self.auctions.get(auction_id)

        def undo():
            if previous is None:
                self.auctions.pop(auction_id, None)
            else:
                self.auctions[auction_id] = previous

        self.journal.record(undo)
        if auction is None:
            self.auctions.pop(auction_id, None)
        else:
            self.auctions[auction_id] = auction

    def _allocate_id(self) -> int:
        auction_id = self._next_id
        self.journal.record(lambda: setattr(self, "_next_id", auction_id))
        self._next_id = auction_id + 1
        return auction_id

    def get_auction(self, auction_id: int) -> Auction:
        auction = self.auctions.get(auction_id)
        if auction is None:
            raise AuctionServiceError(f"Auction {auction_id} does not exist")
        return auction

    # =========================================================================
    # AuctionService
    # =========================================================================

    def create_auction(
        self,
        token_id: int,
        token_contract: Any,
        duration: int,
        reserve_price: int,
        curator: bytes,
        curator_fee_percent: int,
        currency: Any,
        caller: bytes,
    ) -> int:
        if curator_fee_percent < 0 or curator_fee_percent >= 100:
            raise AuctionServiceError("Curator fee percentage must be less than 100")
        if duration <= 0:
            raise AuctionServiceError("Duration must be positive")
        if reserve_price < 0:
            raise AuctionServiceError("Reserve price must be non-negative")

        with self.journal.atomic():
            token_owner = token_contract.owner_of(token_id)
            if caller != token_owner and token_contract.get_approved(token_id) != caller:
                raise AuctionServiceError("Caller must be approved or owner for token id")

            auction_id = self._allocate_id()
            self._put(
                Auction(
                    auction_id=auction_id,
                    token_id=token_id,
                    token_contract=token_contract,
                    token_owner=token_owner,
                    currency=currency,
                    duration=duration,
                    reserve_price=reserve_price,
                    curator=curator,
                    curator_fee_percent=curator_fee_percent,
                    approved=curator == ZERO_ADDRESS,
                ),
                auction_id,
            )
            token_contract.transfer_from(self.address, token_owner, self.address, token_id)

        logger.info(f"Auction {auction_id} created: token {token_id}, reserve {reserve_price}, duration {duration}s")
        return auction_id

    def set_auction_approval(self, auction_id: int, approved: bool, caller: bytes) -> None:
        with self.journal.atomic():
            auction = self.get_auction(auction_id)
            if caller != auction.curator:
                raise AuctionServiceError("Must be auction curator")
            if auction.started:
                raise AuctionServiceError("Auction has already started")
            self._put(replace(auction, approved=approved), auction_id)

    def set_auction_reserve_price(self, auction_id: int, reserve_price: int, caller: bytes) -> None:
        with self.journal.atomic():
            auction = self.get_auction(auction_id)
            if caller not in (auction.curator, auction.token_owner):
                raise AuctionServiceError("Must be auction curator or token owner")
            if auction.started:
                raise AuctionServiceError("Auction has already started")
            if reserve_price < 0:
                raise AuctionServiceError("Reserve price must be non-negative")
            self._put(replace(auction, reserve_price=reserve_price), auction_id)

    def create_bid(self, auction_id: int, amount: int, bidder: bytes) -> None:
        """
        Place a bid, escrowing ``amount`` of the auction currency.

        Raises:
            AuctionServiceError: unapproved, expired, below reserve or increment
        """
        with self.journal.atomic():
            auction = self.get_auction(auction_id)
            now = self.clock()

            if not auction.approved:
                raise AuctionServiceError("Auction must be approved by curator")
            if auction.started and now >= auction.ends_at:
                raise AuctionServiceError("Auction expired")
            if amount < auction.reserve_price:
                raise AuctionServiceError("Must send at least reserve price")
            if auction.amount and amount < auction.amount + auction.amount * MIN_BID_INCREMENT_PERCENT // 100:
                raise AuctionServiceError(
                    f"Must send more than last bid by {MIN_BID_INCREMENT_PERCENT}% amount"
                )

            auction.currency.transfer(bidder, self.address, amount)
            if auction.bidder != ZERO_ADDRESS:
                auction.currency.transfer(self.address, auction.bidder, auction.amount)

            first_bid_time = auction.first_bid_time or now
            duration = auction.duration
            if first_bid_time + duration - now < TIME_BUFFER:
                duration += TIME_BUFFER - (first_bid_time + duration - now)

            self._put(
                replace(auction, amount=amount, bidder=bidder, first_bid_time=first_bid_time, duration=duration),
                auction_id,
            )

        logger.info(f"Bid on auction {auction_id}: {amount} from {short_hex(bidder)}")

    def end_auction(self, auction_id: int, caller: bytes) -> None:
        with self.journal.atomic():
            auction = self.get_auction(auction_id)
            if not auction.started:
                raise AuctionServiceError("Auction hasn't begun")
            if self.clock() < auction.ends_at:
                raise AuctionServiceError("Auction hasn't completed")

            curator_fee = 0
            if auction.curator != ZERO_ADDRESS:
                curator_fee = auction.amount * auction.curator_fee_percent // 100
            owner_profit = auction.amount - curator_fee

            self._put(None, auction_id)
            auction.token_contract.transfer_from(self.address, self.address, auction.bidder, auction.token_id)
            auction.currency.transfer(self.address, auction.token_owner, owner_profit)
            if curator_fee:
                auction.currency.transfer(self.address, auction.curator, curator_fee)

        logger.info(
            f"Auction {auction_id} ended: winner {short_hex(auction.bidder)}, "
            f"owner profit {owner_profit}, curator fee {curator_fee}"
        )

    def cancel_auction(self, auction_id: int, caller: bytes) -> None:
        with self.journal.atomic():
            auction = self.get_auction(auction_id)
            if caller not in (auction.curator, auction.token_owner):
                raise AuctionServiceError("Can only be called by auction creator or curator")
            if auction.amount != 0:
                raise AuctionServiceError("Can't cancel an auction once it's begun")

            self._put(None, auction_id)
            auction.token_contract.transfer_from(self.address, self.address, auction.token_owner, auction.token_id)

        logger.info(f"Auction {auction_id} canceled")
