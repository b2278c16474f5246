import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from preorder.core.config import Settings


def verify_admin_credentials(username: str, password: str, settings: Settings) -> bool:
    """
    The dashboard has a single admin account configured through the environment.
    An unset ADMIN_PASSWORD disables login entirely.
    """
    if not settings.ADMIN_PASSWORD:
        return False
    username_ok = hmac.compare_digest(username.encode("utf-8"), settings.ADMIN_USERNAME.encode("utf-8"))
    password_ok = hmac.compare_digest(password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8"))
    return username_ok and password_ok


def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
