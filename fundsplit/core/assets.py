"""
Assets - currency and collectible ledgers used by distribution instances.

TokenLedger models the fungible currency that auction proceeds and payouts
are denominated in. Its transfer primitive is "transfer or fail": either the
full amount moves or TransferError is raised and nothing changes.

CollectibleRegistry models the token contract holding the auctioned item.
Ownership moves through approve/transfer_from, the same way an auction
service takes custody of the item it sells.

Both ledgers journal every mutation so that an aborted operation leaves
balances and ownership untouched.
"""

from typing import Dict, Optional, Tuple

from fundsplit.core.errors import TransferError
from fundsplit.core.state.journal import Journal
from fundsplit.crypto import ADDRESS_SIZE, ZERO_ADDRESS, keccak256, short_hex
from fundsplit.utils.logger import get_logger
from fundsplit.utils.validation import validate_amount

logger = get_logger("assets")


def _address_for(label: str) -> bytes:
    return keccak256(label.encode())[-ADDRESS_SIZE:]


# =============================================================================
# Currency
# =============================================================================


class TokenLedger:
    """
    Fungible token balances.

    Attributes:
        symbol: Display symbol
        address: 20-byte identifier of the currency
        balances: address -> balance
        total_supply: Sum of all balances
    """

    def __init__(self, journal: Journal, symbol: str = "TKN", address: Optional[bytes] = None):
        self.journal = journal
        self.symbol = symbol
        self.address = address or _address_for(f"token:{symbol}")
        self.balances: Dict[bytes, int] = {}
        self.total_supply = 0

    def balance_of(self, owner: bytes) -> int:
        return self.balances.get(owner, 0)

    def _set_balance(self, owner: bytes, value: int) -> None:
        previous = self.balances.get(owner)

        def undo():
            if previous is None:
                self.balances.pop(owner, None)
            else:
                self.balances[owner] = previous

        self.journal.record(undo)
        self.balances[owner] = value

    def mint(self, recipient: bytes, amount: int) -> None:
        """Create ``amount`` new tokens for ``recipient``."""
        valid, err = validate_amount(amount)
        if not valid:
            raise TransferError(err)
        with self.journal.atomic():
            supply = self.total_supply
            self.journal.record(lambda: setattr(self, "total_supply", supply))
            self.total_supply += amount
            self._set_balance(recipient, self.balance_of(recipient) + amount)
        logger.debug(f"Minted {amount} {self.symbol} to {short_hex(recipient)}")

    def transfer(self, sender: bytes, recipient: bytes, amount: int) -> None:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Raises:
            TransferError: invalid amount, zero recipient or insufficient balance
        """
        valid, err = validate_amount(amount)
        if not valid:
            raise TransferError(err)
        if recipient == ZERO_ADDRESS:
            raise TransferError("Transfer to the zero address")

        with self.journal.atomic():
            balance = self.balance_of(sender)
            if balance < amount:
                raise TransferError(
                    f"Insufficient {self.symbol} balance: {short_hex(sender)} has {balance}, needs {amount}"
                )
            self._set_balance(sender, balance - amount)
            self._set_balance(recipient, self.balance_of(recipient) + amount)

        logger.debug(f"Transfer {amount} {self.symbol}: {short_hex(sender)} -> {short_hex(recipient)}")

    def __repr__(self) -> str:
        return f"TokenLedger(symbol={self.symbol}, holders={len(self.balances)}, supply={self.total_supply})"


# =============================================================================
# Collectibles
# =============================================================================


class CollectibleRegistry:
    """
    Non-fungible token ownership with single-spender approvals.

    Attributes:
        name: Display name of the collection
        address: 20-byte identifier of the collection
        owners: token_id -> owner address
        approvals: token_id -> approved spender
    """

    def __init__(self, journal: Journal, name: str = "Collectibles", address: Optional[bytes] = None):
        self.journal = journal
        self.name = name
        self.address = address or _address_for(f"collectible:{name}")
        self.owners: Dict[int, bytes] = {}
        self.approvals: Dict[int, bytes] = {}

    def _set(self, mapping: Dict[int, bytes], token_id: int, value: Optional[bytes]) -> None:
        previous = mapping.get(token_id)

        def undo():
            if previous is None:
                mapping.pop(token_id, None)
            else:
                mapping[token_id] = previous

        self.journal.record(undo)
        if value is None:
            mapping.pop(token_id, None)
        else:
            mapping[token_id] = value

    def mint(self, recipient: bytes, token_id: int) -> None:
        with self.journal.atomic():
            if token_id in self.owners:
                raise TransferError(f"Token {token_id} already minted")
            self._set(self.owners, token_id, recipient)

    def owner_of(self, token_id: int) -> bytes:
        owner = self.owners.get(token_id)
        if owner is None:
            raise TransferError(f"Token {token_id} does not exist")
        return owner

    def get_approved(self, token_id: int) -> Optional[bytes]:
        return self.approvals.get(token_id)

    def approve(self, caller: bytes, spender: bytes, token_id: int) -> None:
        """Allow ``spender`` to move ``token_id``; only the owner may approve."""
        with self.journal.atomic():
            if self.owner_of(token_id) != caller:
                raise TransferError(f"{short_hex(caller)} does not own token {token_id}")
            self._set(self.approvals, token_id, spender)

    def transfer_from(self, caller: bytes, sender: bytes, recipient: bytes, token_id: int) -> None:
        """
        Move ``token_id`` from ``sender`` to ``recipient``.

        The caller must be the owner or the approved spender. Approval is
        cleared on transfer.
        """
        if recipient == ZERO_ADDRESS:
            raise TransferError("Transfer to the zero address")

        with self.journal.atomic():
            owner = self.owner_of(token_id)
            if owner != sender:
                raise TransferError(f"Token {token_id} is not owned by {short_hex(sender)}")
            if caller != owner and self.approvals.get(token_id) != caller:
                raise TransferError(f"{short_hex(caller)} is not approved for token {token_id}")
            self._set(self.approvals, token_id, None)
            self._set(self.owners, token_id, recipient)

        logger.debug(f"Token {token_id} moved {short_hex(sender)} -> {short_hex(recipient)}")

    def tokens_of(self, owner: bytes) -> Tuple[int, ...]:
        return tuple(sorted(t for t, o in self.owners.items() if o == owner))
