"""
Auction Lifecycle - association of an instance with one external auction.

States:
-------
    NONE ──create──> CREATED ──end────> ENDED     (fund captured)
                        │
                        └────cancel──> CANCELED  (nothing captured)

Approval and reserve-price changes are pass-through delegations to the
auction service; they leave the local phase at CREATED. The service itself
rejects them once bidding has started.

Invariants:
----------
- auction_ref moves from 0 to non-zero at most once
- generated_fund is written only by the end transition
- local state is updated and journaled before control passes to the
  auction service
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

from fundsplit.core.errors import (
    AuctionAlreadyCreated,
    AuctionClosed,
    AuctionNotCreated,
    AuctionServiceError,
)
from fundsplit.core.state.journal import Journal
from fundsplit.crypto import short_hex
from fundsplit.utils.logger import get_logger

logger = get_logger("auction")


class AuctionPhase(IntEnum):
    """Local view of the associated auction."""
    NONE = 0       # No auction created yet
    CREATED = 1    # Auction reference held; configurable until bidding starts
    ENDED = 2      # Settled; generated_fund captured
    CANCELED = 3   # Abandoned; no funds captured


# =============================================================================
# Auction Service Interface
# =============================================================================


class AuctionService(ABC):
    """
    Capability interface of the external auction system.

    Implementations must either complete an operation or raise; every
    raise aborts the caller's whole operation.
    """

    address: bytes

    @abstractmethod
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
        """Create an auction for ``token_id`` and return its non-zero id."""

    @abstractmethod
    def set_auction_approval(self, auction_id: int, approved: bool, caller: bytes) -> None:
        ...

    @abstractmethod
    def set_auction_reserve_price(self, auction_id: int, reserve_price: int, caller: bytes) -> None:
        ...

    @abstractmethod
    def end_auction(self, auction_id: int, caller: bytes) -> None:
        """Settle the auction, paying proceeds to the token owner."""

    @abstractmethod
    def cancel_auction(self, auction_id: int, caller: bytes) -> None:
        """Abandon the auction, returning the item to the token owner."""


# =============================================================================
# Lifecycle State Machine
# =============================================================================


class AuctionLifecycle:
    """
    Single-auction state machine of one distribution instance.

    Attributes:
        auction_ref: Id of the associated auction (0 = none)
        generated_fund: Currency captured when the auction ended
        phase: Current AuctionPhase
    """

    def __init__(
        self,
        journal: Journal,
        auction_ref: int = 0,
        generated_fund: int = 0,
        phase: AuctionPhase = AuctionPhase.NONE,
    ):
        self.journal = journal
        self.auction_ref = auction_ref
        self.generated_fund = generated_fund
        self.phase = AuctionPhase(phase)

    def _set(self, **changes) -> None:
        for name, value in changes.items():
            previous = getattr(self, name)
            self.journal.record(lambda name=name, previous=previous: setattr(self, name, previous))
            setattr(self, name, value)

    def require_created(self) -> int:
        """Return auction_ref, raising AuctionNotCreated if there is none."""
        if self.auction_ref == 0:
            raise AuctionNotCreated("No auction has been created for this instance")
        return self.auction_ref

    def require_open(self) -> int:
        """Like require_created, and the auction must still be CREATED."""
        auction_id = self.require_created()
        if self.phase != AuctionPhase.CREATED:
            raise AuctionClosed(f"Auction {auction_id} is {self.phase.name}")
        return auction_id

    # =========================================================================
    # Transitions
    # =========================================================================

    def create(
        self,
        service: AuctionService,
        instance_address: bytes,
        currency: Any,
        token_id: int,
        token_contract: Any,
        duration: int,
        reserve_price: int,
        curator: bytes,
        curator_fee_percent: int,
    ) -> int:
        """
        NONE -> CREATED.

        Approves the item to the service, then delegates creation and keeps
        the returned id. The phase is claimed before the service runs so a
        re-entrant create sees CREATED and fails.
        """
        if self.auction_ref != 0 or self.phase != AuctionPhase.NONE:
            raise AuctionAlreadyCreated(f"Auction {self.auction_ref} already created")

        self._set(phase=AuctionPhase.CREATED)
        token_contract.approve(instance_address, service.address, token_id)
        auction_id = service.create_auction(
            token_id,
            token_contract,
            duration,
            reserve_price,
            curator,
            curator_fee_percent,
            currency,
            instance_address,
        )
        if not isinstance(auction_id, int) or auction_id == 0:
            raise AuctionServiceError(f"Auction service returned invalid id {auction_id!r}")

        self._set(auction_ref=auction_id)
        logger.info(f"Auction {auction_id} created for token {token_id} (instance {short_hex(instance_address)})")
        return auction_id

    def set_approval(self, service: AuctionService, instance_address: bytes, approved: bool) -> None:
        auction_id = self.require_created()
        service.set_auction_approval(auction_id, approved, instance_address)
        logger.info(f"Auction {auction_id} approval set to {approved}")

    def set_reserve_price(self, service: AuctionService, instance_address: bytes, reserve_price: int) -> None:
        auction_id = self.require_created()
        service.set_auction_reserve_price(auction_id, reserve_price, instance_address)
        logger.info(f"Auction {auction_id} reserve price set to {reserve_price}")

    def end(self, service: AuctionService, instance_address: bytes, currency: Any, caller: bytes) -> int:
        """
        CREATED -> ENDED.

        Delegates settlement, then snapshots the instance's post-call
        currency balance as the distributable fund.
        """
        auction_id = self.require_open()
        service.end_auction(auction_id, caller)

        fund = currency.balance_of(instance_address)
        self._set(generated_fund=fund, phase=AuctionPhase.ENDED)
        logger.info(f"Auction {auction_id} ended, generated fund = {fund}")
        return fund

    def cancel(self, service: AuctionService, instance_address: bytes) -> None:
        """CREATED -> CANCELED."""
        auction_id = self.require_open()
        self._set(phase=AuctionPhase.CANCELED)
        service.cancel_auction(auction_id, instance_address)
        logger.info(f"Auction {auction_id} canceled")

    def __repr__(self) -> str:
        return f"AuctionLifecycle(ref={self.auction_ref}, phase={self.phase.name}, fund={self.generated_fund})"
