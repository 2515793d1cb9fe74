"""
Runtime configuration

Everything the backend needs from the environment is read once, at startup,
into a Settings model. A `.env` file next to the process is honoured.
"""
import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

REQUIRED_VARS = ("DATABASE_URL", "JWT_SECRET", "RAZORPAY_KEY", "RAZORPAY_SECRET")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class ConfigError(RuntimeError):
    pass


class Settings(BaseModel):
    database_url: str
    database_name: str = "storefront"
    database_strict: bool = False
    jwt_secret: str = Field(..., min_length=1)
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = Field(60 * 24 * 7, ge=0, description="0 disables expiry")
    razorpay_key: str
    razorpay_secret: str = Field(..., min_length=1)
    razorpay_api_url: str = "https://api.razorpay.com/v1"
    gateway_timeout: float = 10.0
    upload_dir: str = "upload/images"
    public_base_url: Optional[str] = None
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        missing = [name for name in REQUIRED_VARS if not os.getenv(name)]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
        try:
            return cls(
                database_url=os.environ["DATABASE_URL"],
                database_name=os.getenv("DATABASE_NAME", "storefront"),
                database_strict=os.getenv("DATABASE_STRICT", "false").lower() in ("1", "true", "yes"),
                jwt_secret=os.environ["JWT_SECRET"],
                jwt_expire_minutes=_int_var("JWT_EXPIRE_MINUTES", 60 * 24 * 7),
                razorpay_key=os.environ["RAZORPAY_KEY"],
                razorpay_secret=os.environ["RAZORPAY_SECRET"],
                razorpay_api_url=os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
                upload_dir=os.getenv("UPLOAD_DIR", "upload/images"),
                public_base_url=os.getenv("PUBLIC_BASE_URL") or None,
                port=_int_var("PORT", 8000),
                log_level=os.getenv("LOG_LEVEL", "INFO"),
            )
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}")


def _int_var(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
