import hashlib
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from app.config import settings

TOKEN_TYPE_ACCESS = "access"


def _prehash(password: str) -> bytes:
    """bcrypt only reads 72 bytes; hash first so long passphrases still count in full."""
    return hashlib.sha256(password.encode()).digest()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_prehash(password), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(_prehash(plain), hashed.encode())


def create_access_token(subject: str, role: str | None = None) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "typ": TOKEN_TYPE_ACCESS,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.access_token_expire_minutes),
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_claims(token: str) -> dict | None:
    """Verified claims of an access token, or None if it is malformed, expired or not an access token."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if claims.get("typ") != TOKEN_TYPE_ACCESS or not claims.get("sub"):
        return None
    return claims


def decode_access_token(token: str) -> str | None:
    claims = decode_access_claims(token)
    return claims["sub"] if claims else None


def generate_id() -> str:
    return str(uuid4())
