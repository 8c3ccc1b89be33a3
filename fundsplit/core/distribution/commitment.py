"""
Commitment builder - the off-system side of a distribution.

Turns a beneficiary list into a Merkle root plus one proof per beneficiary.
Indices are assigned in list order. The builder reports the total committed
percentage but does not require it to be 100%; that check belongs to
whoever publishes the commitment.
"""

from typing import List, Sequence, Tuple

from fundsplit.core.distribution.merkle import MerkleTree, hash_leaf
from fundsplit.core.distribution.models import AllocationFile, ClaimEntry, CommitmentFile
from fundsplit.core.distribution.shares import SCALE, percent_to_scaled
from fundsplit.crypto import bytes_to_hex, hex_to_bytes
from fundsplit.utils.logger import get_logger

logger = get_logger("commitment")


def allocations_from_file(data: AllocationFile, scale: int = SCALE) -> List[Tuple[bytes, int]]:
    """Resolve an allocation file into (address, scaled_percent) pairs."""
    resolved = []
    for allocation in data.allocations:
        if allocation.share_percent is not None:
            share = allocation.share_percent
        else:
            share = percent_to_scaled(allocation.percent, scale)
        resolved.append((hex_to_bytes(allocation.address), share))
    return resolved


def build_distribution(
    allocations: Sequence[Tuple[bytes, int]],
    scale: int = SCALE,
) -> CommitmentFile:
    """
    Build the commitment for ``allocations``.

    Args:
        allocations: (beneficiary address, scaled percent) in index order
        scale: Percent scale the shares are expressed in

    Returns:
        CommitmentFile with root and per-beneficiary proofs
    """
    if not allocations:
        raise ValueError("Cannot commit to an empty beneficiary list")

    leaves = [hash_leaf(index, address, share) for index, (address, share) in enumerate(allocations)]
    tree = MerkleTree(leaves)

    claims = {}
    for index, (address, share) in enumerate(allocations):
        key = bytes_to_hex(address).lower()
        if key in claims:
            raise ValueError(f"Duplicate beneficiary {key}")
        claims[key] = ClaimEntry(
            index=index,
            share_percent=share,
            proof=[bytes_to_hex(node) for node in tree.prove(index)],
        )

    total = sum(share for _, share in allocations)
    if total != 100 * scale:
        logger.warning(f"Committed shares total {total}, expected {100 * scale}")

    root = tree.root()
    logger.info(f"Built commitment {bytes_to_hex(root)} for {len(allocations)} beneficiaries")

    return CommitmentFile(
        merkle_root=bytes_to_hex(root),
        percent_scale=scale,
        total_share_percent=total,
        claims=claims,
    )


__all__ = [
    "allocations_from_file",
    "build_distribution",
]
