from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from typing import Optional

from preorder.core.config import Settings, get_settings
from preorder.core.sms import NotificationDispatcher, TextLkClient
from preorder.schemas.token import TokenData

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False) # Set auto_error=False


def get_sms_client(settings: Settings = Depends(get_settings)) -> TextLkClient:
    return TextLkClient.from_settings(settings)


def get_notification_dispatcher(
    client: TextLkClient = Depends(get_sms_client),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    return NotificationDispatcher(client, settings)


async def get_current_admin(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
) -> TokenData:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token is None: # No token provided (auto_error=False)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        username: Optional[str] = payload.get("sub")
        if username is None:
            raise credentials_exception
        token_data = TokenData(username=username)
    except JWTError: # Catches any error during decoding (expired, invalid signature, etc.)
        raise credentials_exception

    if token_data.username != settings.ADMIN_USERNAME:
        raise credentials_exception
    return token_data
