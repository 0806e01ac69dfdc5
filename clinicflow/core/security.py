"""Password hashing and bearer tokens.

Tokens only identify the principal. The role claim is informational;
the access context is always resolved from the database so that role
changes and deactivation take effect before the token expires.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from clinicflow.config import settings

TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    user_id: UUID | str,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id: Subject of the token
        role: Role at issue time, echoed for clients
        expires_delta: Lifetime; defaults to ``access_token_expire_minutes``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": TOKEN_TYPE,
    }
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID | None:
    """
    Validate a token and return the user id it was issued for.

    Returns None for bad signatures, expired tokens, tokens of another
    type and subjects that are not UUIDs.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if claims.get("type") != TOKEN_TYPE:
        return None
    try:
        return UUID(str(claims.get("sub")))
    except ValueError:
        return None
