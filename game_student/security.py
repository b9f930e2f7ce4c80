"""
Password hashing and JWT session tokens.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    email: str,
    secret: str,
    algorithm: str = "HS256",
    ttl_minutes: int = 5,
    now: Optional[datetime] = None,
) -> str:
    """
    Issue a signed token carrying the ``email`` claim.

    Args:
        email: Principal the token is issued for
        secret: Shared signing secret
        ttl_minutes: Lifetime of the token; there is no refresh
        now: Issue time, defaults to the current UTC time
    """
    issued_at = now or datetime.now(timezone.utc)
    claims = {
        "email": email,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=ttl_minutes),
    }
    return jwt.encode(claims, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Optional[dict]:
    """Return the token claims, or None when the signature or expiry is invalid."""
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
