from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

ALGORITHM = "HS256"

pwd_ctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_ctx.verify(plain, hashed)


def create_token(subject: str, secret_key: str, expires_minutes: int, role: Optional[str] = None) -> str:
    expires = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode = {"sub": subject, "exp": expires}
    if role:
        to_encode["role"] = role
    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: str) -> dict:
    return jwt.decode(token, secret_key, algorithms=[ALGORITHM])


def bearer_headers(token: Optional[str]) -> dict:
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def token_expired(token: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Reads the `exp` claim without verifying the signature; the client never
    holds the signing key. Opaque (non-JWT) tokens are treated as live and
    left for the backend to reject.
    """
    if not token:
        return True
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return False
    now = now or datetime.now(timezone.utc)
    return float(exp) <= now.timestamp()
