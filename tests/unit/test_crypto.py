"""
Unit tests for cryptographic primitives.

Tests cover:
1. Key generation and address derivation
2. Hashing functions
3. Hex helpers
"""

import pytest

from fundsplit.crypto import (
    address_from_public_key,
    bytes_to_hex,
    generate_keypair,
    hex_to_bytes,
    is_valid_address,
    keccak256,
    private_key_to_public_key,
    short_hex,
    to_checksum_address,
)


class TestKeyGeneration:
    """Tests for key generation."""

    def test_keypair_generation_produces_valid_lengths(self):
        """KeyPair should have correct field lengths."""
        kp = generate_keypair()
        assert len(kp.private_key) == 32
        assert len(kp.public_key) == 64
        assert len(kp.address) == 20

    def test_keypair_address_format(self):
        """Hex address should be 0x-prefixed 40 hex chars."""
        kp = generate_keypair()
        assert is_valid_address(kp.address_hex)

    def test_keypairs_are_unique(self):
        kp1 = generate_keypair()
        kp2 = generate_keypair()
        assert kp1.private_key != kp2.private_key
        assert kp1.address != kp2.address

    def test_known_address(self):
        """Private key 1 maps to the well-known Ethereum address."""
        public_key = private_key_to_public_key((1).to_bytes(32, "big"))
        assert bytes_to_hex(address_from_public_key(public_key)) == "0x7e5f4552091a69125d5dfcb7b8c2659029395bdf"

    def test_rejects_bad_key_lengths(self):
        with pytest.raises(ValueError):
            private_key_to_public_key(b"\x01" * 31)
        with pytest.raises(ValueError):
            address_from_public_key(b"\x01" * 63)


class TestHashing:
    """Tests for hashing functions."""

    def test_keccak256_empty(self):
        """Keccak-256, not NIST SHA3-256."""
        assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"

    def test_keccak256_length(self):
        assert len(keccak256(b"test")) == 32

    def test_keccak256_different_inputs(self):
        assert keccak256(b"a") != keccak256(b"b")


class TestUtility:
    """Tests for utility functions."""

    def test_bytes_to_hex(self):
        assert bytes_to_hex(bytes([0xde, 0xad, 0xbe, 0xef])) == "0xdeadbeef"

    def test_hex_to_bytes(self):
        """Should handle both 0x prefix and plain hex."""
        assert hex_to_bytes("0xdeadbeef") == bytes([0xde, 0xad, 0xbe, 0xef])
        assert hex_to_bytes("deadbeef") == bytes([0xde, 0xad, 0xbe, 0xef])

    def test_is_valid_address(self):
        assert is_valid_address("0x" + "a" * 40)
        assert not is_valid_address("0x" + "a" * 39)  # Too short
        assert not is_valid_address("a" * 40)  # No 0x
        assert not is_valid_address("0x" + "g" * 40)  # Invalid hex

    def test_short_hex(self):
        assert short_hex(bytes([0xab]) * 20) == "0xabababab..."
        assert short_hex(bytes([0xab]) * 20, 6) == "0xabab..."

    def test_checksum_address(self):
        """Reference vector from EIP-55."""
        address = hex_to_bytes("0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed")
        assert to_checksum_address(address) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

    def test_keypair_hex_is_checksummed(self):
        kp = generate_keypair()
        assert kp.address_hex.lower() == bytes_to_hex(kp.address)
