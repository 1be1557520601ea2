from __future__ import annotations

import re
import secrets
from datetime import UTC, date, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from club_finance.core.config import settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"
TOKEN_TYPE = "access"

# e.g. RC250417: prefix, two-digit calendar year, four random digits.
MEMBER_CODE_RE = re.compile(r"^[A-Z]{1,4}\d{2}\d{4}$")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(*, subject: str, expires_minutes: int | None = None) -> str:
    issued = datetime.now(UTC)
    ttl = timedelta(minutes=expires_minutes or settings.access_token_exp_minutes)
    claims = {"sub": subject, "typ": TOKEN_TYPE, "iat": issued, "exp": issued + ttl}
    return jwt.encode(claims, settings.secret_key, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str) -> str | None:
    """Member id carried by a valid access token, else None."""
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[TOKEN_ALGORITHM])
    except JWTError:
        return None
    if claims.get("typ") != TOKEN_TYPE:
        return None
    subject = claims.get("sub")
    return subject if isinstance(subject, str) else None


def generate_member_code(*, today: date) -> str:
    return f"{settings.member_code_prefix}{today.year % 100:02d}{secrets.randbelow(10000):04d}"
