"""Dashboard authentication: bcrypt passwords, JWT bearer tokens, optional TOTP."""

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
import pyotp

from tradedesk.config import settings

TOKEN_ISSUER = "tradedesk"


def hash_password(password: str) -> str:
    # bcrypt ignores everything past 72 bytes
    pw = password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    pw = plain.encode("utf-8")[:72]
    return bcrypt.checkpw(pw, hashed.encode("utf-8"))


def create_access_token(username: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": username,
        "iss": TOKEN_ISSUER,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str | None:
    """Return the username a token was issued to, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=TOKEN_ISSUER,
        )
    except JWTError:
        return None
    return payload.get("sub")


def check_second_factor(totp_secret: str | None, code: str | None) -> bool:
    """Users without a TOTP secret pass; users with one must present a valid code."""
    if not totp_secret:
        return True
    if not code:
        return False
    return pyotp.TOTP(totp_secret).verify(code, valid_window=1)


def new_totp_secret(username: str) -> tuple[str, str]:
    """Generate a TOTP secret and its provisioning URI for authenticator apps."""
    secret = pyotp.random_base32()
    uri = pyotp.TOTP(secret).provisioning_uri(name=username, issuer_name="Trade Desk")
    return secret, uri
