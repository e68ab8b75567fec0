"""Unit tests for password hashing utilities."""

from src.gm_gateway.auth.password import hash_password, verify_password


def test_hash_is_not_plain():
    hashed = hash_password("Gig4Hire!")
    assert hashed != "Gig4Hire!"
    assert hashed.startswith("$2")


def test_verify_correct_password():
    hashed = hash_password("Gig4Hire!")
    assert verify_password("Gig4Hire!", hashed) is True


def test_verify_wrong_password():
    hashed = hash_password("Gig4Hire!")
    assert verify_password("Gig4Hire?", hashed) is False


def test_malformed_hash_is_a_mismatch():
    assert verify_password("Gig4Hire!", "not-a-bcrypt-hash") is False
