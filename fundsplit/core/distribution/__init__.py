"""
FundSplit Distribution Module.

Membership proofs, anti-replay claim sets, share conversion and the
distribution engine that ties them together.
"""

from fundsplit.core.distribution.merkle import (
    MerkleTree,
    hash_leaf,
    hash_pair,
    verify,
    verify_proof,
)
from fundsplit.core.distribution.claims import (
    ClaimSet,
    BitmapClaimSet,
    DEFAULT_WORD_BITS,
)
from fundsplit.core.distribution.shares import (
    SCALE,
    PERCENT_DENOMINATOR,
    scaled_amount,
    percent_to_scaled,
    scaled_to_percent,
    dust,
)
from fundsplit.core.distribution.models import (
    ClaimRequest,
    Allocation,
    AllocationFile,
    ClaimEntry,
    CommitmentFile,
)
from fundsplit.core.distribution.commitment import (
    allocations_from_file,
    build_distribution,
)
from fundsplit.core.distribution.engine import (
    ClaimEvent,
    DistributionEngine,
)

__all__ = [
    # Merkle
    "MerkleTree",
    "hash_leaf",
    "hash_pair",
    "verify",
    "verify_proof",
    # Claims
    "ClaimSet",
    "BitmapClaimSet",
    "DEFAULT_WORD_BITS",
    # Shares
    "SCALE",
    "PERCENT_DENOMINATOR",
    "scaled_amount",
    "percent_to_scaled",
    "scaled_to_percent",
    "dust",
    # Models
    "ClaimRequest",
    "Allocation",
    "AllocationFile",
    "ClaimEntry",
    "CommitmentFile",
    # Builder
    "allocations_from_file",
    "build_distribution",
    # Engine
    "ClaimEvent",
    "DistributionEngine",
]
