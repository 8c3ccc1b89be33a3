"""
Merkle commitments for beneficiary sets.

Conceptual Background:
---------------------
A distribution commits to its full list of (index, beneficiary, share)
entries with a single 32-byte root. A beneficiary later proves membership
with the sibling digests along the path from its leaf to the root, so the
instance never stores the list itself.

Leaf encoding (packed, EVM compatible):

    leaf = keccak256(uint256(index) || address(beneficiary) || uint256(share))

Internal nodes hash the two children in sorted order:

    parent = keccak256(min(a, b) || max(a, b))

Sorting makes the fold position-free: a proof is just a list of siblings,
with no left/right flags. A node without a sibling on its layer is promoted
unchanged to the next layer.

Properties:
----------
- Build: O(n)
- Prove: O(log n)
- Verify: O(log n), pure, never raises
"""

from typing import List, Sequence

from fundsplit.crypto import ADDRESS_SIZE, HASH_SIZE, keccak256
from fundsplit.utils.validation import MAX_PROOF_LENGTH, MAX_UINT256


# =============================================================================
# Hashing
# =============================================================================


def encode_leaf(index: int, beneficiary: bytes, share_percent: int) -> bytes:
    """Canonical packed encoding of one committed entry."""
    return (
        index.to_bytes(32, byteorder="big")
        + bytes(beneficiary)
        + share_percent.to_bytes(32, byteorder="big")
    )


def hash_leaf(index: int, beneficiary: bytes, share_percent: int) -> bytes:
    """
    Compute the leaf digest for an entry.

    Raises:
        ValueError: if a field is outside its canonical encoding
    """
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index <= MAX_UINT256:
        raise ValueError(f"index must be a uint256, got {index!r}")
    if isinstance(share_percent, bool) or not isinstance(share_percent, int) or not 0 <= share_percent <= MAX_UINT256:
        raise ValueError(f"share_percent must be a uint256, got {share_percent!r}")
    if not isinstance(beneficiary, (bytes, bytearray)) or len(beneficiary) != ADDRESS_SIZE:
        raise ValueError("beneficiary must be a 20-byte address")
    return keccak256(encode_leaf(index, beneficiary, share_percent))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two nodes in sorted order."""
    if a <= b:
        return keccak256(a + b)
    return keccak256(b + a)


# =============================================================================
# Verification
# =============================================================================


def verify_proof(proof: Sequence[bytes], root: bytes, leaf: bytes) -> bool:
    """
    Fold ``proof`` into ``leaf`` and compare with ``root``.

    Args:
        proof: Sibling digests from leaf level upwards
        root: Expected commitment root
        leaf: Leaf digest being proven

    Returns:
        True if the folded value equals root. Malformed input is False.
    """
    if not _is_digest(root) or not _is_digest(leaf):
        return False
    if not isinstance(proof, (list, tuple)) or len(proof) > MAX_PROOF_LENGTH:
        return False

    current = bytes(leaf)
    for sibling in proof:
        if not _is_digest(sibling):
            return False
        current = hash_pair(current, bytes(sibling))

    return current == bytes(root)


def verify(
    root: bytes,
    index: int,
    beneficiary: bytes,
    share_percent: int,
    proof: Sequence[bytes],
) -> bool:
    """
    Check that (index, beneficiary, share_percent) is committed by ``root``.

    Pure function over its inputs; any malformed or truncated input simply
    fails verification.
    """
    try:
        leaf = hash_leaf(index, beneficiary, share_percent)
    except ValueError:
        return False
    return verify_proof(proof, root, leaf)


def _is_digest(value) -> bool:
    return isinstance(value, (bytes, bytearray)) and len(value) == HASH_SIZE


# =============================================================================
# Merkle Tree (commitment builder)
# =============================================================================


class MerkleTree:
    """
    Sorted-pair binary Merkle tree over a fixed list of leaves.

    Built once; layers are kept so proofs are cheap to extract.

    Attributes:
        leaves: Leaf digests in commitment order
        layers: layers[0] == leaves, layers[-1] == [root]
    """

    # Root of an empty commitment
    EMPTY_ROOT = bytes(32)

    def __init__(self, leaves: Sequence[bytes]):
        for i, leaf in enumerate(leaves):
            if not _is_digest(leaf):
                raise ValueError(f"Leaf {i} must be 32 bytes")
        self.leaves: List[bytes] = [bytes(leaf) for leaf in leaves]
        self.layers: List[List[bytes]] = self._build_layers(self.leaves)

    @staticmethod
    def _build_layers(leaves: List[bytes]) -> List[List[bytes]]:
        if not leaves:
            return [[]]
        layers = [leaves]
        while len(layers[-1]) > 1:
            layer = layers[-1]
            next_layer = []
            for i in range(0, len(layer), 2):
                if i + 1 < len(layer):
                    next_layer.append(hash_pair(layer[i], layer[i + 1]))
                else:
                    next_layer.append(layer[i])
            layers.append(next_layer)
        return layers

    def root(self) -> bytes:
        """32-byte commitment root."""
        if not self.leaves:
            return self.EMPTY_ROOT
        return self.layers[-1][0]

    def prove(self, leaf_index: int) -> List[bytes]:
        """
        Generate the inclusion proof for a leaf.

        Returns:
            Sibling digests from the leaf layer upwards.
        """
        if not 0 <= leaf_index < len(self.leaves):
            raise IndexError(f"Leaf index {leaf_index} out of range")

        proof = []
        idx = leaf_index
        for layer in self.layers[:-1]:
            sibling_idx = idx + 1 if idx % 2 == 0 else idx - 1
            if sibling_idx < len(layer):
                proof.append(layer[sibling_idx])
            idx //= 2
        return proof

    def __len__(self) -> int:
        return len(self.leaves)

    def __contains__(self, leaf: bytes) -> bool:
        return leaf in self.leaves
