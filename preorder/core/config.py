import os
import logging
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

logger = logging.getLogger(__name__)

PAYHERE_SANDBOX_CHECKOUT_URL = "https://sandbox.payhere.lk/pay/checkout"
PAYHERE_LIVE_CHECKOUT_URL = "https://www.payhere.lk/pay/checkout"


class Settings(BaseModel):
    """
    Runtime configuration. Built from environment variables by `get_settings()`
    and injected into endpoints, so tests can swap in fixture secrets.
    """
    DATABASE_URL: str = "sqlite:///./preorder.db"
    LOG_LEVEL: str = "INFO"

    # JWT settings for the admin dashboard
    SECRET_KEY: str = "a_very_secret_key_that_should_be_in_env_file_and_much_stronger"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: Optional[str] = None

    BASE_URL: str = "http://localhost:8000"

    # PayHere
    PAYHERE_MERCHANT_ID: str = ""
    PAYHERE_MERCHANT_SECRET: Optional[str] = None
    PAYHERE_MODE: str = "sandbox"  # "sandbox" or "live"
    CURRENCY: str = "LKR"

    # Product & pricing
    PRODUCT_NAME: str = "Lifting Social Elite Gym Shaker"
    PRODUCT_PRICE: Decimal = Decimal("2500")
    DELIVERY_FEE: Decimal = Decimal("0")

    # Text.lk SMS
    TEXTLK_API_TOKEN: Optional[str] = None
    TEXTLK_API_BASE: str = "https://app.text.lk/api/v3"
    TEXTLK_SENDER_ID: str = "LiftSocial"
    ADMIN_PHONE: Optional[str] = None
    PHONE_COUNTRY_CODE: str = "94"
    SMS_TIMEOUT_SECONDS: float = 10.0

    @property
    def payhere_checkout_url(self) -> str:
        if self.PAYHERE_MODE == "live":
            return PAYHERE_LIVE_CHECKOUT_URL
        return PAYHERE_SANDBOX_CHECKOUT_URL

    @property
    def notify_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/api/v1/payments/payhere/notify"

    @property
    def return_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/success"

    @property
    def cancel_url(self) -> str:
        return f"{self.BASE_URL.rstrip('/')}/cancel"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name)
            if raw is not None and raw != "":
                values[name] = raw  # pydantic coerces to the declared type
        return cls(**values)


@lru_cache()
def get_settings() -> Settings:
    settings = Settings.from_env()

    if not settings.PAYHERE_MERCHANT_SECRET:
        # Avoid logging the secret itself, only the fact that it is missing.
        logger.warning("PayHere merchant secret is not configured. Payment callbacks will be rejected.")
    if not settings.ADMIN_PASSWORD:
        logger.warning("ADMIN_PASSWORD is not configured. Admin login is disabled.")
    return settings
