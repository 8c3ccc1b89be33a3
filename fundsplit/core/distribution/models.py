"""
Data models for claims and commitment files.

ClaimRequest is the transient input to a claim. The file models describe
the JSON exchanged with the off-system process that builds commitments:

    allocations.json  ->  AllocationFile   (who gets what percentage)
    commitment.json   ->  CommitmentFile   (root + per-beneficiary proofs)

Byte fields accept either raw bytes or 0x-prefixed hex strings.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from fundsplit.crypto import bytes_to_hex, hex_to_bytes
from fundsplit.utils.validation import ADDRESS_SIZE, HASH_SIZE, MAX_UINT256, validate_hex_string


def _coerce_bytes(value: Any, size: int, name: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != size:
            raise ValueError(f"{name} must be {size} bytes, got {len(value)}")
        return bytes(value)
    valid, err = validate_hex_string(value, name, size)
    if not valid:
        raise ValueError(err)
    return hex_to_bytes(value)


def _check_uint256(value: int, name: str) -> int:
    if value < 0:
        raise ValueError(f"{name} must be >= 0")
    if value > MAX_UINT256:
        raise ValueError(f"{name} must be <= 2**256 - 1")
    return value


# =============================================================================
# Claim Request
# =============================================================================


class ClaimRequest(BaseModel):
    """
    One claim: the committed entry plus its inclusion proof.

    Attributes:
        index: Position of the entry in the commitment
        beneficiary: 20-byte recipient address
        share_percent: Scaled percentage committed for this entry
        proof: Sibling digests, leaf level first
    """
    model_config = ConfigDict(frozen=True)

    index: int
    beneficiary: bytes
    share_percent: int
    proof: Tuple[bytes, ...] = ()

    @field_validator("beneficiary", mode="before")
    @classmethod
    def _parse_beneficiary(cls, value):
        return _coerce_bytes(value, ADDRESS_SIZE, "beneficiary")

    @field_validator("proof", mode="before")
    @classmethod
    def _parse_proof(cls, value):
        if isinstance(value, (bytes, bytearray, str)):
            raise ValueError("proof must be a sequence of digests")
        return tuple(_coerce_bytes(node, HASH_SIZE, f"proof[{i}]") for i, node in enumerate(value))

    @field_validator("index", "share_percent")
    @classmethod
    def _bound(cls, value, info):
        return _check_uint256(value, info.field_name)

    def as_args(self) -> tuple:
        return self.index, self.beneficiary, self.share_percent, list(self.proof)


# =============================================================================
# Files
# =============================================================================


class Allocation(BaseModel):
    """
    One beneficiary in an allocation file.

    Exactly one of ``percent`` (human, e.g. "12.5") or ``share_percent``
    (already scaled) must be given.
    """
    address: str
    percent: Optional[str] = None
    share_percent: Optional[int] = None

    @field_validator("share_percent")
    @classmethod
    def _bound_share(cls, value):
        return value if value is None else _check_uint256(value, "share_percent")

    @field_validator("address")
    @classmethod
    def _check_address(cls, value):
        valid, err = validate_hex_string(value, "address", ADDRESS_SIZE)
        if not valid:
            raise ValueError(err)
        return value.lower()

    @field_validator("percent", mode="before")
    @classmethod
    def _percent_as_text(cls, value):
        if isinstance(value, float):
            raise ValueError("percent must be given as a string, not a float")
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def _one_share_field(self):
        if (self.percent is None) == (self.share_percent is None):
            raise ValueError("Give exactly one of 'percent' or 'share_percent'")
        return self


class AllocationFile(BaseModel):
    allocations: List[Allocation]

    @model_validator(mode="after")
    def _unique_addresses(self):
        seen = set()
        for allocation in self.allocations:
            if allocation.address in seen:
                raise ValueError(f"Duplicate address {allocation.address}")
            seen.add(allocation.address)
        return self


class ClaimEntry(BaseModel):
    index: int
    share_percent: int
    proof: List[str]

    @field_validator("index", "share_percent")
    @classmethod
    def _bound(cls, value, info):
        return _check_uint256(value, info.field_name)


class CommitmentFile(BaseModel):
    """
    Output of the commitment builder.

    Attributes:
        merkle_root: 0x-prefixed 32-byte root
        percent_scale: Scale the share percentages are expressed in
        total_share_percent: Sum of all committed shares (scaled)
        claims: lowercase address -> claim entry
    """
    merkle_root: str
    percent_scale: int
    total_share_percent: int
    claims: Dict[str, ClaimEntry]

    @property
    def root_bytes(self) -> bytes:
        return hex_to_bytes(self.merkle_root)

    def request_for(self, address: bytes) -> ClaimRequest:
        """Build the ClaimRequest for ``address``."""
        entry = self.claims.get(bytes_to_hex(address).lower())
        if entry is None:
            raise KeyError(f"{bytes_to_hex(address)} is not in this commitment")
        return ClaimRequest(
            index=entry.index,
            beneficiary=address,
            share_percent=entry.share_percent,
            proof=entry.proof,
        )

    def requests(self) -> List[ClaimRequest]:
        """All claim requests in index order."""
        ordered = sorted(self.claims.items(), key=lambda item: item[1].index)
        return [self.request_for(hex_to_bytes(address)) for address, _ in ordered]
