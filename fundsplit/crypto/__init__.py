"""
Cryptographic primitives for FundSplit.

Commitments, instance addresses and identities all use Keccak-256 so that
roots and proofs built here match what EVM tooling produces from the same
allocation file. Accounts are Ethereum-style: the low 20 bytes of the hash
of an uncompressed secp256k1 public key.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_SIZE = 20
HASH_SIZE = 32
ZERO_ADDRESS = b"\x00" * ADDRESS_SIZE


def keccak256(data: bytes) -> bytes:
    """Keccak-256 as used by the EVM (pre-standard padding, not SHA3-256)."""
    return keccak.new(data=data, digest_bits=256).digest()


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPair:
    """secp256k1 keypair; ``public_key`` is x || y without the 0x04 tag."""

    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> bytes:
        return address_from_public_key(self.public_key)

    @property
    def address_hex(self) -> str:
        return to_checksum_address(self.address)


def private_key_to_public_key(private_key: bytes) -> bytes:
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")
    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, "big") + y.to_bytes(32, "big")


def address_from_public_key(public_key: bytes) -> bytes:
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-ADDRESS_SIZE:]


def generate_keypair() -> KeyPair:
    """Fresh random account, used for throwaway demo identities."""
    secret = (secrets.randbelow(SECP256K1_ORDER - 1) + 1).to_bytes(32, "big")
    return KeyPair(private_key=secret, public_key=private_key_to_public_key(secret))


# -----------------------------------------------------------------------------
# Hex helpers
# -----------------------------------------------------------------------------


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Accepts both ``0x``-prefixed and bare hex."""
    if hex_str[:2] in ("0x", "0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """``0x`` followed by exactly 40 hex digits (any case)."""
    if len(address) != 2 + 2 * ADDRESS_SIZE or not address.startswith("0x"):
        return False
    try:
        bytes.fromhex(address[2:])
    except ValueError:
        return False
    return True


def to_checksum_address(address: bytes) -> str:
    """
    Mixed-case hex encoding of a 20-byte address (EIP-55).

    A letter is upper-cased when the matching nibble of
    keccak256(lowercase hex) is 8 or more.
    """
    lowered = address.hex()
    digest = keccak256(lowered.encode("ascii")).hex()
    return "0x" + "".join(
        char.upper() if int(digest[i], 16) >= 8 else char
        for i, char in enumerate(lowered)
    )


def short_hex(data: bytes, length: int = 10) -> str:
    """Abbreviated hex for log lines."""
    return bytes_to_hex(data)[:length] + "..."


__all__ = [
    "ADDRESS_SIZE",
    "HASH_SIZE",
    "SECP256K1_ORDER",
    "ZERO_ADDRESS",
    "KeyPair",
    "keccak256",
    "generate_keypair",
    "private_key_to_public_key",
    "address_from_public_key",
    "bytes_to_hex",
    "hex_to_bytes",
    "is_valid_address",
    "to_checksum_address",
    "short_hex",
]
