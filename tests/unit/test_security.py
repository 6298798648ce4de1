"""
Unit tests for password hashing.

Tests cover:
- Argon2 hash format and salting
- Verification of hashed and plain stored values
- Rehash detection
"""

from stockroom.security import hash_password, is_hashed, needs_rehash, verify_password


class TestPasswordHashing:
    """Tests for hash_password/verify_password."""

    def test_hash_verifies(self):
        """A hash verifies against its password only."""
        stored = hash_password("hunter2")

        assert stored.startswith("$argon2id$")
        assert is_hashed(stored)
        assert verify_password("hunter2", stored)
        assert not verify_password("hunter3", stored)

    def test_hashes_are_salted(self):
        """Hashing the same password twice gives different values."""
        assert hash_password("pw") != hash_password("pw")

    def test_plain_legacy_value(self):
        """Unhashed stored values are compared directly."""
        assert not is_hashed("letmein")
        assert verify_password("letmein", "letmein")
        assert not verify_password("letmein2", "letmein")

    def test_empty_values(self):
        """Empty passwords or stored values never verify."""
        assert not verify_password("", "")
        assert not verify_password("pw", "")

    def test_malformed_hash(self):
        """A corrupted hash fails closed."""
        assert not verify_password("pw", "$argon2id$garbage")

    def test_needs_rehash(self):
        assert needs_rehash("plain")
        assert not needs_rehash(hash_password("pw"))
