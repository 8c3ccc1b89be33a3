"""
Distribution Engine - one instance per commitment root.

Conceptual Background:
---------------------
An instance is bound to a commitment root, a currency, an owner and an
auction service. The owner runs one auction through the instance; when it
ends, the instance's currency balance becomes the distributable fund. Each
committed beneficiary then claims its share:

1. Reject if the index is already claimed       (AlreadyClaimed)
2. Reject if the proof does not reach the root  (InvalidProof)
3. Mark the index claimed
4. amount = floor(fund * share / (100 * SCALE))
5. Transfer amount to the beneficiary           (TransferFailed)
6. Notify listeners with ClaimEvent(index, beneficiary, amount)

The claim bit is set before any value leaves the instance, so a re-entrant
claim from inside the transfer sees the index as claimed.

Construction is two-phase: the factory creates the instance uninitialized,
then ``initialize`` binds it exactly once. Every business method checks
initialization first.

Each public operation runs inside ``Journal.atomic()``: if any step fails,
every change made by the operation (claim bits, auction reference, fund,
currency movements) is rolled back. ``batch_claim`` is one unit, so one bad
request aborts the whole batch.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from fundsplit.core.auction.lifecycle import AuctionLifecycle, AuctionPhase, AuctionService
from fundsplit.core.config import DistributionConfig
from fundsplit.core.distribution import merkle
from fundsplit.core.distribution.claims import BitmapClaimSet, ClaimSet
from fundsplit.core.distribution.models import ClaimRequest
from fundsplit.core.distribution.shares import scaled_amount
from fundsplit.core.errors import (
    AlreadyClaimed,
    InitializationReplay,
    InvalidProof,
    NotAuthorized,
    NotInitialized,
    TransferError,
    TransferFailed,
)
from fundsplit.core.state.journal import Journal
from fundsplit.core.storage.storage_manager import InstanceRecord, StorageManager
from fundsplit.crypto import bytes_to_hex, short_hex
from fundsplit.utils.logger import get_logger
from fundsplit.utils.validation import (
    require,
    validate_address,
    validate_hash,
    validate_integer,
    validate_proof,
)

logger = get_logger("engine")


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class ClaimEvent:
    """Emitted once a claim has committed."""
    index: int
    beneficiary: bytes
    amount: int


ClaimInput = Union[ClaimRequest, tuple, dict]


# =============================================================================
# Distribution Engine
# =============================================================================


class DistributionEngine:
    """
    A distribution instance.

    Attributes:
        address: 20-byte instance address (holds the auction proceeds)
        commitment_root: Merkle root of the beneficiary set (None until initialized)
        currency: Token ledger used for proceeds and payouts
        owner: Identity allowed to drive the auction lifecycle
        auction_service: Injected AuctionService capability
        claims: Anti-replay claim set
        lifecycle: Single-auction state machine
        events: Committed ClaimEvents, oldest first
    """

    def __init__(
        self,
        address: bytes,
        journal: Optional[Journal] = None,
        claims: Optional[ClaimSet] = None,
        storage_manager: Optional[StorageManager] = None,
        config: Optional[DistributionConfig] = None,
    ):
        require(validate_address(address, "address"))
        self.address = address
        self.journal = journal or Journal()
        self.config = config or DistributionConfig()
        self.claims = claims if claims is not None else BitmapClaimSet(self.config.claim_word_bits)
        self.storage_manager = storage_manager

        self.commitment_root: Optional[bytes] = None
        self.currency: Any = None
        self.owner: Optional[bytes] = None
        self.auction_service: Optional[AuctionService] = None
        self._initialized = False

        self.lifecycle = AuctionLifecycle(self.journal)

        self.events: List[ClaimEvent] = []
        self.listeners: List[Callable[[ClaimEvent], None]] = []

    # =========================================================================
    # Initialization
    # =========================================================================

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(
        self,
        commitment_root: bytes,
        currency: Any,
        owner: bytes,
        auction_service: AuctionService,
    ) -> None:
        """
        Bind the instance. Callable exactly once.

        Raises:
            InitializationReplay: if already initialized
            ValueError: malformed root or owner
        """
        with self.journal.atomic():
            if self._initialized:
                raise InitializationReplay(f"Instance {short_hex(self.address)} already initialized")
            require(validate_hash(commitment_root, "commitment_root"))
            require(validate_address(owner, "owner"))
            if currency is None or auction_service is None:
                raise ValueError("currency and auction_service are required")

            self.journal.record(self._reset_binding)
            self.commitment_root = bytes(commitment_root)
            self.currency = currency
            self.owner = bytes(owner)
            self.auction_service = auction_service
            self._initialized = True
            self.journal.after_commit(self._persist)

        logger.info(
            f"Instance {short_hex(self.address)} initialized: root={short_hex(self.commitment_root)}, "
            f"owner={short_hex(self.owner)}"
        )

    def _reset_binding(self) -> None:
        self.commitment_root = None
        self.currency = None
        self.owner = None
        self.auction_service = None
        self._initialized = False

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitialized(f"Instance {short_hex(self.address)} is not initialized")

    def _only_owner(self, caller: bytes) -> None:
        """Single authorization guard for owner-gated operations."""
        self._require_initialized()
        if caller != self.owner:
            logger.warning(f"Rejected owner-only call from {short_hex(caller)}")
            raise NotAuthorized(f"{bytes_to_hex(caller)} is not the instance owner")

    # =========================================================================
    # State Access
    # =========================================================================

    @property
    def generated_fund(self) -> int:
        return self.lifecycle.generated_fund

    @property
    def auction_ref(self) -> int:
        return self.lifecycle.auction_ref

    @property
    def phase(self) -> AuctionPhase:
        return self.lifecycle.phase

    def is_claimed(self, index: int) -> bool:
        self._require_initialized()
        require(validate_integer(index, "index"))
        return self.claims.is_claimed(index)

    def balance(self) -> int:
        """Currency currently held by the instance (unclaimed shares plus dust)."""
        self._require_initialized()
        return self.currency.balance_of(self.address)

    # =========================================================================
    # Claims
    # =========================================================================

    def claim(
        self,
        index: int,
        beneficiary: bytes,
        share_percent: int,
        proof: Sequence[bytes],
    ) -> int:
        """
        Pay one committed share.

        Returns:
            Amount transferred to the beneficiary

        Raises:
            AlreadyClaimed, InvalidProof, TransferFailed, NotInitialized
        """
        with self.journal.atomic():
            self._require_initialized()

            valid_index, err = validate_integer(index, "index")
            if not valid_index:
                raise InvalidProof(index, f"Malformed claim index: {err}")
            if self.claims.is_claimed(index):
                logger.warning(f"Replay of index {index} rejected")
                raise AlreadyClaimed(index)
            well_formed, err = validate_proof(proof, "proof", self.config.max_proof_length)
            if not well_formed:
                logger.warning(f"Malformed proof for index {index}: {err}")
                raise InvalidProof(index, f"Malformed proof for index {index}: {err}")
            if not merkle.verify(self.commitment_root, index, beneficiary, share_percent, proof):
                logger.warning(f"Invalid proof for index {index}")
                raise InvalidProof(index)

            self._set_claimed(index)

            amount = scaled_amount(self.lifecycle.generated_fund, share_percent, self.config.percent_scale)
            try:
                self.currency.transfer(self.address, bytes(beneficiary), amount)
            except TransferError as e:
                raise TransferFailed(f"Payout for index {index} failed: {e}") from e

            event = ClaimEvent(index=index, beneficiary=bytes(beneficiary), amount=amount)
            self.journal.after_commit(lambda: self._emit(event))

        logger.info(f"Claimed index {index}: {amount} to {short_hex(beneficiary)}")
        return amount

    def batch_claim(self, requests: Sequence[ClaimInput]) -> List[int]:
        """
        Run ``claim`` for each request in order, as one all-or-nothing unit.

        Requests may be ClaimRequest models, (index, beneficiary, share, proof)
        tuples, or dicts accepted by ClaimRequest.

        Returns:
            Amounts paid, in request order
        """
        if len(requests) > self.config.max_batch_size:
            raise ValueError(f"Batch of {len(requests)} exceeds max {self.config.max_batch_size}")

        amounts = []
        with self.journal.atomic():
            for request in requests:
                amounts.append(self.claim(*self._claim_args(request)))

        logger.info(f"Batch of {len(amounts)} claims committed, total {sum(amounts)}")
        return amounts

    @staticmethod
    def _claim_args(request: ClaimInput) -> tuple:
        if isinstance(request, ClaimRequest):
            return request.as_args()
        if isinstance(request, dict):
            return ClaimRequest.model_validate(request).as_args()
        index, beneficiary, share_percent, proof = request
        return index, beneficiary, share_percent, proof

    def _set_claimed(self, index: int) -> None:
        word_index, _ = self.claims.locate(index)
        previous = self.claims.get_word(word_index)
        self.journal.record(lambda: self.claims.set_word(word_index, previous))
        self.claims.set_claimed(index)

    def _emit(self, event: ClaimEvent) -> None:
        self.events.append(event)
        for listener in self.listeners:
            listener(event)

    def subscribe(self, listener: Callable[[ClaimEvent], None]) -> None:
        """Register a callback for committed claims."""
        self.listeners.append(listener)

    # =========================================================================
    # Auction Lifecycle
    # =========================================================================

    def create_auction(
        self,
        caller: bytes,
        token_id: int,
        token_contract: Any,
        duration: int,
        reserve_price: int,
        curator: bytes,
        curator_fee_percent: int,
    ) -> int:
        """
        Put the instance's collectible up for auction. Owner only, once.

        Returns:
            The auction reference

        Raises:
            NotAuthorized, AuctionAlreadyCreated
        """
        with self.journal.atomic():
            self._only_owner(caller)
            auction_id = self.lifecycle.create(
                self.auction_service,
                self.address,
                self.currency,
                token_id,
                token_contract,
                duration,
                reserve_price,
                curator,
                curator_fee_percent,
            )
            self.journal.after_commit(self._persist)
        return auction_id

    def set_auction_approval(self, caller: bytes, approved: bool) -> None:
        with self.journal.atomic():
            self._only_owner(caller)
            self.lifecycle.set_approval(self.auction_service, self.address, approved)

    def set_auction_reserve_price(self, caller: bytes, reserve_price: int) -> None:
        with self.journal.atomic():
            self._only_owner(caller)
            self.lifecycle.set_reserve_price(self.auction_service, self.address, reserve_price)

    def end_auction(self, caller: bytes) -> int:
        """
        Settle the auction and capture the proceeds. Open to any caller.

        Returns:
            The generated fund
        """
        with self.journal.atomic():
            self._require_initialized()
            fund = self.lifecycle.end(self.auction_service, self.address, self.currency, caller)
            self.journal.after_commit(self._persist)
        return fund

    def cancel_auction(self, caller: bytes) -> None:
        with self.journal.atomic():
            self._only_owner(caller)
            self.lifecycle.cancel(self.auction_service, self.address)
            self.journal.after_commit(self._persist)

    # =========================================================================
    # Persistence
    # =========================================================================

    def to_record(self) -> InstanceRecord:
        self._require_initialized()
        return InstanceRecord(
            address=self.address,
            commitment_root=self.commitment_root,
            currency=self.currency.address,
            owner=self.owner,
            auction_service=self.auction_service.address,
            generated_fund=self.lifecycle.generated_fund,
            auction_ref=self.lifecycle.auction_ref,
            phase=int(self.lifecycle.phase),
        )

    def _persist(self) -> None:
        if self.storage_manager and self._initialized:
            self.storage_manager.save_instance(self.to_record())

    @classmethod
    def restore(
        cls,
        record: InstanceRecord,
        currency: Any,
        auction_service: AuctionService,
        journal: Journal,
        claims: ClaimSet,
        storage_manager: Optional[StorageManager] = None,
        config: Optional[DistributionConfig] = None,
    ) -> "DistributionEngine":
        """Rebuild an initialized instance from its persisted header."""
        engine = cls(record.address, journal, claims, storage_manager, config)
        engine.commitment_root = record.commitment_root
        engine.currency = currency
        engine.owner = record.owner
        engine.auction_service = auction_service
        engine._initialized = True
        engine.lifecycle = AuctionLifecycle(
            journal,
            auction_ref=record.auction_ref,
            generated_fund=record.generated_fund,
            phase=AuctionPhase(record.phase),
        )
        return engine

    # =========================================================================
    # Utility
    # =========================================================================

    def stats(self) -> Dict[str, Any]:
        """Instance summary."""
        self._require_initialized()
        return {
            "address": bytes_to_hex(self.address),
            "commitment_root": bytes_to_hex(self.commitment_root),
            "owner": bytes_to_hex(self.owner),
            "auction_ref": self.lifecycle.auction_ref,
            "phase": self.lifecycle.phase.name,
            "generated_fund": self.lifecycle.generated_fund,
            "claims_paid": len(self.events),
            "total_paid": sum(e.amount for e in self.events),
            "balance": self.currency.balance_of(self.address),
        }

    def __repr__(self) -> str:
        state = "initialized" if self._initialized else "uninitialized"
        return f"DistributionEngine(address={short_hex(self.address)}, {state}, {self.lifecycle!r})"
