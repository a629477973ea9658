"""
Tests for password hashing.
"""

import pytest

from storefront.auth.passwords import PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


class TestPasswordHasher:
    def test_hash_is_not_plaintext(self, hasher):
        stored = hasher.hash("correct horse")
        assert stored != "correct horse"
        assert stored.startswith("$2")

    def test_salted(self, hasher):
        assert hasher.hash("same") != hasher.hash("same")

    def test_verify(self, hasher):
        stored = hasher.hash("correct horse")
        other = hasher.hash("battery staple")

        assert hasher.verify("correct horse", stored)
        assert not hasher.verify("correct horse", other)
        assert not hasher.verify("wrong", stored)

    def test_cost_factor_in_hash(self):
        stored = PasswordHasher(rounds=5).hash("pw")
        assert stored.split("$")[2] == "05"

    @pytest.mark.parametrize("bad_hash", [None, "", "not-a-hash", "$2b$10$short"])
    def test_malformed_hash_is_a_mismatch(self, hasher, bad_hash):
        assert hasher.verify("pw", bad_hash) is False

    def test_blank_password_never_verifies(self, hasher):
        assert not hasher.verify("", hasher.hash("pw"))

    def test_blank_password_cannot_be_hashed(self, hasher):
        with pytest.raises(ValueError):
            hasher.hash("")

    def test_long_passwords(self, hasher):
        """Only the first 72 bytes count, consistently on both sides."""
        long_pw = "x" * 100
        stored = hasher.hash(long_pw)
        assert hasher.verify(long_pw, stored)
        assert hasher.verify("x" * 72, stored)
