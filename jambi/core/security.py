from datetime import datetime, timedelta
from typing import Optional, Tuple
from jose import JWTError, jwt
from passlib.context import CryptContext
from jambi.core.config import settings
import hashlib
import hmac
import secrets

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

API_KEY_PREFIX_LENGTH = 8
LIVE_KEY_PREFIX = "sk_live_"
TEST_KEY_PREFIX = "sk_test_"

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "type": "access"})
    encoded_jwt = jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM
    )
    return encoded_jwt

def verify_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
        subject: str = payload.get("sub")
        if subject is None or payload.get("type") != "access":
            return None
        return subject
    except JWTError:
        return None

def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()

def generate_api_key(is_live: bool) -> Tuple[str, str, str]:
    """Return (plaintext key, prefix, hash). Only the prefix and hash are stored."""
    prefix = LIVE_KEY_PREFIX if is_live else TEST_KEY_PREFIX
    key = f"{prefix}{secrets.token_urlsafe(24)}"
    return key, prefix, hash_api_key(key)

def api_key_matches(key: str, stored_hash: str) -> bool:
    return hmac.compare_digest(hash_api_key(key), stored_hash)

def generate_reference_code() -> str:
    """10-digit numeric code, never starting with 0."""
    return str(1_000_000_000 + secrets.randbelow(9_000_000_000))

def generate_webhook_secret() -> str:
    return f"whsec_{secrets.token_urlsafe(32)}"

def create_webhook_signature(payload: str, timestamp: str, secret: str) -> str:
    signed = f"{timestamp}.{payload}"
    return hmac.new(secret.encode("utf-8"), signed.encode("utf-8"), hashlib.sha256).hexdigest()

def verify_webhook_signature(payload: str, timestamp: str, signature: str, secret: str) -> bool:
    expected = create_webhook_signature(payload, timestamp, secret)
    try:
        return hmac.compare_digest(expected, signature or "")
    except TypeError:
        # non-ASCII signature header
        return False
