import asyncio
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import status
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.error_codes import ErrorCode
from app.core.exceptions import raise_error

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

def hash_password(p: str) -> str:
    return pwd_ctx.hash(p)

def verify_password(p: str, hashed: str) -> bool:
    return pwd_ctx.verify(p, hashed)

def is_bcrypt_hash(hashed: str | None) -> bool:
    # guards against plaintext or half-migrated rows
    if not hashed or not hashed.startswith("$2"):
        return False
    return pwd_ctx.identify(hashed) == "bcrypt"

# bcrypt is CPU bound; keep it off the event loop
async def hash_password_async(p: str) -> str:
    return await asyncio.to_thread(hash_password, p)

async def verify_password_async(p: str, hashed: str) -> bool:
    return await asyncio.to_thread(verify_password, p, hashed)

async def dummy_verify_async() -> None:
    await asyncio.to_thread(pwd_ctx.dummy_verify)

def _jwt_secret() -> str:
    if not settings.JWT_SECRET:
        raise_error(ErrorCode.CONFIG_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")
    return settings.JWT_SECRET

def create_session_jwt(admin_id: str, username: str, is_super_admin: bool) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(days=settings.SESSION_TTL_DAYS)
    payload = {
        "sub": str(admin_id),
        "username": username,
        "is_super_admin": bool(is_super_admin),
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _jwt_secret(), algorithm=settings.JWT_ALG)

def decode_session_jwt(token: str) -> Optional[dict]:
    secret = _jwt_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload

def gen_reset_token(nbytes: int = 32) -> str:
    # 256 bits, hex encoded
    return secrets.token_hex(nbytes)
