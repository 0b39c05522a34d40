"""Tests for password hashing and secret comparison."""

import pytest

from opsdesk.core.security import hash_password, secrets_match, verify_password


class TestPasswords:
    """Tests for hash_password / verify_password."""

    def test_round_trip(self):
        hashed = hash_password("correct horse battery")

        assert hashed != "correct horse battery"
        assert verify_password("correct horse battery", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    def test_missing_hash_never_verifies(self):
        assert verify_password("anything", None) is False
        assert verify_password("anything", "") is False

    def test_malformed_hash(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_over_72_bytes_rejected(self):
        """bcrypt ignores bytes past 72, so longer passwords are refused outright."""
        with pytest.raises(ValueError):
            hash_password("é" * 37)

        hashed = hash_password("a" * 72)
        assert verify_password("a" * 73, hashed) is False


class TestSecretsMatch:
    def test_equal(self):
        assert secrets_match("s3cret", "s3cret") is True

    def test_different(self):
        assert secrets_match("s3cret", "other") is False

    @pytest.mark.parametrize("provided,expected", [("", ""), (None, None), ("x", ""), ("", "x")])
    def test_empty_never_matches(self, provided, expected):
        assert secrets_match(provided, expected) is False
