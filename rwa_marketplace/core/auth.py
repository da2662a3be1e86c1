from datetime import datetime, timedelta, timezone

from fastapi import Header
from jose import JWTError, jwt

from rwa_marketplace.config import settings
from rwa_marketplace.core.addresses import normalize_address
from rwa_marketplace.core.exceptions import InvalidAddressError, UnauthorizedError


def create_access_token(address: str) -> str:
    """Create a JWT for a wallet address. The address becomes the caller identity."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expire_hours)
    payload = {
        "sub": normalize_address(address),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Returns the payload."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")
    if payload.get("sub") is None:
        raise UnauthorizedError("Token missing subject")
    return payload


def get_current_address(authorization: str = Header(None)) -> str:
    """FastAPI dependency that extracts the caller's wallet address from the Authorization header."""
    if not authorization:
        raise UnauthorizedError("Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise UnauthorizedError("Authorization header must be: Bearer <token>")

    payload = decode_token(parts[1])
    try:
        return normalize_address(payload["sub"])
    except InvalidAddressError:
        raise UnauthorizedError("Token subject is not a valid address")
