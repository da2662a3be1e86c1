"""Identity helpers shared by the ledger, registry and auth layers."""

from __future__ import annotations

import re
import secrets

from rwa_marketplace.core.exceptions import InvalidAddressError

ZERO_ADDRESS = "0x" + "0" * 40

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
_MAX_IDENTITY_LEN = 128


def normalize_address(value: str | None) -> str:
    """Return the canonical form of a holder identity.

    ``0x``-prefixed 20-byte hex addresses are lower-cased; any other
    non-empty identity is kept as-is (stripped). Empty identities and the
    zero address are rejected.
    """
    if value is None:
        raise InvalidAddressError(value, "address is required")
    candidate = value.strip()
    if not candidate or len(candidate) > _MAX_IDENTITY_LEN:
        raise InvalidAddressError(value)
    if _HEX_ADDRESS.match(candidate):
        candidate = candidate.lower()
    elif candidate.lower().startswith("0x"):
        raise InvalidAddressError(value, "malformed hex address")
    if candidate == ZERO_ADDRESS:
        raise InvalidAddressError(value, "zero address")
    return candidate


def generate_contract_address() -> str:
    return "0x" + secrets.token_hex(20)
