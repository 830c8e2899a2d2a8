from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Optional, Union, Any, Dict
from jose import jwt
from workboard.config.settings import settings
from workboard.db.redis_db import RedisStore
import uuid

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(store: RedisStore, subject: Union[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    jti = str(uuid.uuid4()) # Unique token identifier
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + delta

    to_encode = {"exp": expire, "sub": str(subject), "jti": jti}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    # Registered so that logout can revoke it before it expires
    store.store_token_jti(jti=jti, user_id=str(subject), expires_in_seconds=int(delta.total_seconds()))
    return encoded_jwt

def decode_access_token(token: str, verify_exp: bool = True) -> Dict[str, Any]:
    """Claims of ``token``; raises jose.JWTError when it is malformed, forged or expired."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM], options={"verify_exp": verify_exp})
