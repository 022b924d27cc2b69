# nftgate/utils.py
import os
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError

from nftgate.errors import InvalidAddress, Unauthorized
from nftgate.signing import to_checksum_address

SECRET = os.environ.get("NFTGATE_JWT_SECRET", "dev-secret-key")
JWT_ALG = "HS256"
JWT_TTL_MINUTES = int(os.environ.get("NFTGATE_JWT_TTL_MINUTES", "60"))

def issue_caller_token(address: str, ttl_minutes: int = None) -> str:
    """Bearer token identifying `address` as the caller."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": to_checksum_address(address),
        "iat": now,
        "exp": now + timedelta(minutes=ttl_minutes or JWT_TTL_MINUTES),
    }
    return jwt.encode(payload, SECRET, algorithm=JWT_ALG)

def verify_caller_token(token: str) -> str:
    """Return the caller address carried by `token`."""
    try:
        claims = jwt.decode(token, SECRET, algorithms=[JWT_ALG])
    except JWTError as exc:
        raise Unauthorized("invalid bearer token") from exc
    try:
        return to_checksum_address(claims.get("sub"))
    except InvalidAddress as exc:
        raise Unauthorized("bearer token subject is not an address") from exc
