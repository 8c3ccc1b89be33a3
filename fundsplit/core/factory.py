"""
Instance Factory - one distribution instance per commitment root.

Instance addresses are deterministic, computed CREATE2-style from the
factory address and the commitment root:

    address = keccak256(0xff || factory || root || keccak256(INSTANCE_CODE))[12:]

so the address of a distribution is known before it exists, and a second
creation for the same root collides with the first and is rejected.
"""

from typing import Any, Dict, Iterable, List, Optional

from fundsplit.core.auction.lifecycle import AuctionService
from fundsplit.core.config import DistributionConfig
from fundsplit.core.distribution.claims import BitmapClaimSet, ClaimSet
from fundsplit.core.distribution.engine import DistributionEngine
from fundsplit.core.errors import InstanceAlreadyExists
from fundsplit.core.state.journal import Journal
from fundsplit.core.storage.claim_set import SQLiteClaimSet
from fundsplit.core.storage.storage_manager import StorageManager
from fundsplit.crypto import ADDRESS_SIZE, bytes_to_hex, keccak256, short_hex
from fundsplit.utils.logger import get_logger
from fundsplit.utils.validation import require, validate_address, validate_hash

logger = get_logger("factory")


# Identifies the instance implementation; part of every instance address
INSTANCE_CODE = b"fundsplit.DistributionEngine.v1"
INSTANCE_CODE_HASH = keccak256(INSTANCE_CODE)


def compute_instance_address(factory_address: bytes, commitment_root: bytes) -> bytes:
    """CREATE2-style address for ``commitment_root`` under ``factory_address``."""
    require(validate_address(factory_address, "factory_address"))
    require(validate_hash(commitment_root, "commitment_root"))
    digest = keccak256(b"\xff" + factory_address + commitment_root + INSTANCE_CODE_HASH)
    return digest[-ADDRESS_SIZE:]


class InstanceFactory:
    """
    Creates and tracks distribution instances.

    Attributes:
        address: 20-byte factory address (salt domain for instance addresses)
        auction_service: Service every instance is bound to
        journal: Shared journal for all instances and asset ledgers
        instances: instance address -> DistributionEngine
    """

    def __init__(
        self,
        address: bytes,
        auction_service: AuctionService,
        journal: Optional[Journal] = None,
        storage_manager: Optional[StorageManager] = None,
        config: Optional[DistributionConfig] = None,
    ):
        require(validate_address(address, "address"))
        self.address = address
        self.auction_service = auction_service
        self.journal = journal or Journal()
        self.storage_manager = storage_manager
        self.config = config or DistributionConfig()
        self.instances: Dict[bytes, DistributionEngine] = {}

        if self.storage_manager:
            self.storage_manager.set_meta("factory_address", bytes_to_hex(address))

        logger.info(f"InstanceFactory at {bytes_to_hex(address)}")

    def predict_instance_address(self, commitment_root: bytes) -> bytes:
        return compute_instance_address(self.address, commitment_root)

    def _claim_set_for(self, instance_address: bytes) -> ClaimSet:
        if self.storage_manager:
            return SQLiteClaimSet(self.storage_manager, instance_address, self.config.claim_word_bits)
        return BitmapClaimSet(self.config.claim_word_bits)

    def _exists(self, instance_address: bytes) -> bool:
        if instance_address in self.instances:
            return True
        if self.storage_manager:
            return self.storage_manager.load_instance(instance_address) is not None
        return False

    def create_instance(self, commitment_root: bytes, currency: Any, owner: bytes) -> bytes:
        """
        Create and initialize the instance for ``commitment_root``.

        Returns:
            The instance address (equal to predict_instance_address(root))

        Raises:
            InstanceAlreadyExists: an instance for this root already exists
        """
        instance_address = self.predict_instance_address(commitment_root)

        with self.journal.atomic():
            if self._exists(instance_address):
                raise InstanceAlreadyExists(
                    f"Instance for root {bytes_to_hex(commitment_root)} already exists at "
                    f"{bytes_to_hex(instance_address)}"
                )

            engine = DistributionEngine(
                instance_address,
                journal=self.journal,
                claims=self._claim_set_for(instance_address),
                storage_manager=self.storage_manager,
                config=self.config,
            )
            self.instances[instance_address] = engine
            self.journal.record(lambda: self.instances.pop(instance_address, None))
            engine.initialize(commitment_root, currency, owner, self.auction_service)

        logger.info(
            f"Instance created at {bytes_to_hex(instance_address)} for root {short_hex(commitment_root)}"
        )
        return instance_address

    def get_instance(self, instance_address: bytes) -> Optional[DistributionEngine]:
        return self.instances.get(instance_address)

    def instance_for_root(self, commitment_root: bytes) -> Optional[DistributionEngine]:
        return self.instances.get(self.predict_instance_address(commitment_root))

    def restore_instances(self, currencies: Iterable[Any]) -> List[bytes]:
        """
        Reload persisted instances.

        Args:
            currencies: Token ledgers instances may be denominated in,
                matched by their ``address``

        Returns:
            Addresses of restored instances
        """
        if not self.storage_manager:
            return []

        by_address = {c.address: c for c in currencies}
        restored = []
        for record in self.storage_manager.list_instances():
            if record.address in self.instances:
                continue
            if record.address != self.predict_instance_address(record.commitment_root):
                continue
            currency = by_address.get(record.currency)
            if currency is None:
                logger.warning(f"Skipping {short_hex(record.address)}: unknown currency {short_hex(record.currency)}")
                continue
            if record.auction_service != self.auction_service.address:
                logger.warning(f"Skipping {short_hex(record.address)}: bound to a different auction service")
                continue

            self.instances[record.address] = DistributionEngine.restore(
                record,
                currency,
                self.auction_service,
                self.journal,
                self._claim_set_for(record.address),
                storage_manager=self.storage_manager,
                config=self.config,
            )
            restored.append(record.address)

        logger.info(f"Restored {len(restored)} instance(s)")
        return restored

    def __len__(self) -> int:
        return len(self.instances)
