from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
import logging

from preorder.core.config import Settings, get_settings
from preorder.core.security import verify_admin_credentials, create_access_token
from preorder.schemas.token import Token

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/login", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    settings: Settings = Depends(get_settings),
):
    """
    OAuth2 compatible token login for the admin dashboard.
    """
    if not verify_admin_credentials(form_data.username, form_data.password, settings):
        logger.warning(f"Failed admin login attempt for username: {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": settings.ADMIN_USERNAME}, # "sub" is a standard claim for the subject
        settings=settings,
    )
    return {"access_token": access_token, "token_type": "bearer"}
