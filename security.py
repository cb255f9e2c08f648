import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

import config
from errors import Unauthenticated
from schemas import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS)
# auto_error off so a missing header is reported as our own 401 body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/login", auto_error=False)


class InvalidToken(Exception):
    pass


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # unrecognised or corrupt hash
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "user": {"id": str(user_id), "role": role},
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str) -> Identity:
    """Check signature and expiry, then return the identity in the payload.

    Raises InvalidToken for anything that is not a well-formed, unexpired
    token signed with our key.
    """
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError as e:
        raise InvalidToken(str(e))
    user = payload.get("user")
    if not isinstance(user, dict):
        raise InvalidToken("Token payload has no user")
    try:
        return Identity(**user)
    except ValidationError:
        raise InvalidToken("Token payload has an invalid user")


async def get_current_identity(token: Optional[str] = Depends(oauth2_scheme)) -> Identity:
    if not token:
        raise Unauthenticated("No token provided")
    try:
        return decode_access_token(token)
    except InvalidToken as e:
        logger.debug("Rejected token: %s", e)
        raise Unauthenticated("Invalid token")
