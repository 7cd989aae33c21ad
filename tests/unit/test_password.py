"""Unit tests for password hashing."""

import pytest

from storeauth.kernel.identity.password import PasswordHasher


class TestPasswordHasher:
    """Tests for PasswordHasher."""
    
    def test_hash_creates_different_hashes(self):
        """Same password should create different hashes (due to salt)."""
        hasher = PasswordHasher(rounds=4)
        password = "TestPassword123"
        hash1 = hasher.hash(password)
        hash2 = hasher.hash(password)
        
        assert hash1 != hash2
        assert hash1.startswith("$2b$04$")  # bcrypt prefix and cost
    
    def test_verify_correct_password(self):
        """Correct password should verify successfully."""
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("TestPassword123")
        
        assert hasher.verify("TestPassword123", hashed) is True
    
    def test_verify_wrong_password(self):
        """Wrong password should fail verification, not raise."""
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("TestPassword123")
        
        assert hasher.verify("WrongPassword", hashed) is False

    def test_verify_malformed_digest_raises(self):
        """A digest that is not bcrypt is an error, not a mismatch."""
        with pytest.raises(ValueError):
            PasswordHasher(rounds=4).verify("TestPassword123", "not-a-bcrypt-hash")

    def test_long_passwords_truncate_consistently(self):
        """Passwords past bcrypt's 72-byte limit hash and verify the same way."""
        hasher = PasswordHasher(rounds=4)
        password = "A1b" + "x" * 100
        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True

    def test_needs_rehash(self):
        """Digests with a different cost factor need upgrading."""
        weak = PasswordHasher(rounds=4).hash("TestPassword123")

        assert PasswordHasher(rounds=4).needs_rehash(weak) is False
        assert PasswordHasher(rounds=5).needs_rehash(weak) is True
        assert PasswordHasher(rounds=4).needs_rehash("garbage") is True
