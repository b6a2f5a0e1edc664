"""Tests for password hashing."""

import pytest

from focus_sync.core.passwords import hash_password, verify_password


@pytest.mark.unit
class TestPasswords:
    def test_hash_verifies_original_password(self):
        hashed = hash_password("hunter2")

        assert verify_password("hunter2", hashed)
        assert not verify_password("hunter3", hashed)

    def test_hash_is_salted(self):
        assert hash_password("hunter2") != hash_password("hunter2")

    def test_hash_records_algorithm_and_rounds(self):
        hashed = hash_password("hunter2", iterations=1234)

        algorithm, rounds, _, _ = hashed.split("$")
        assert algorithm == "pbkdf2_sha256"
        assert rounds == "1234"

    @pytest.mark.parametrize(
        "stored",
        ["", "plain-text", "md5$1$abc$def", "pbkdf2_sha256$many$abc$def", "pbkdf2_sha256$1$!!$??"],
    )
    def test_malformed_hash_never_matches(self, stored):
        assert verify_password("hunter2", stored) is False
