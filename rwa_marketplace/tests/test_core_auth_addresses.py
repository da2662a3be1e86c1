"""Tests for identity normalisation, JWT auth and config validation."""

import pytest

from rwa_marketplace.config import Settings, validate_security_posture
from rwa_marketplace.core.addresses import ZERO_ADDRESS, generate_contract_address, normalize_address
from rwa_marketplace.core.auth import create_access_token, decode_token, get_current_address
from rwa_marketplace.core.exceptions import InvalidAddressError, UnauthorizedError


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

def test_hex_address_lowercased():
    raw = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
    assert normalize_address(raw) == raw.lower()


def test_plain_identity_kept():
    assert normalize_address("  treasury  ") == "treasury"


@pytest.mark.parametrize("value", [None, "", "   ", ZERO_ADDRESS, "0x1234", "x" * 129])
def test_invalid_identities_rejected(value):
    with pytest.raises(InvalidAddressError):
        normalize_address(value)


def test_generated_contract_addresses_are_valid():
    address = generate_contract_address()
    assert normalize_address(address) == address


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def test_token_subject_is_normalized_address():
    raw = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
    payload = decode_token(create_access_token(raw))
    assert payload["sub"] == raw.lower()


def test_decode_garbage_token():
    with pytest.raises(UnauthorizedError):
        decode_token("garbage")


@pytest.mark.parametrize("header", [None, "", "Token abc", "Bearer"])
def test_get_current_address_rejects_bad_headers(header):
    with pytest.raises(UnauthorizedError):
        get_current_address(header)


def test_get_current_address_accepts_bearer():
    address = generate_contract_address()
    assert get_current_address(f"Bearer {create_access_token(address)}") == address


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_invalid_relist_policy_is_fatal():
    with pytest.raises(RuntimeError, match="RELIST_POLICY"):
        validate_security_posture(Settings(relist_policy="queue", jwt_secret_key="s" * 32))


def test_default_secret_fatal_in_production():
    with pytest.raises(RuntimeError, match="JWT_SECRET_KEY"):
        validate_security_posture(Settings(environment="production", jwt_secret_key="dev-secret-change-in-production"))


def test_wildcard_cors_fatal_in_production():
    with pytest.raises(RuntimeError, match="CORS_ORIGINS"):
        validate_security_posture(
            Settings(environment="production", jwt_secret_key="s" * 32, cors_origins="*")
        )


def test_default_secret_warns_in_development():
    with pytest.warns(UserWarning, match="JWT_SECRET_KEY"):
        validate_security_posture(Settings(environment="development", jwt_secret_key="dev-secret-change-in-production"))
