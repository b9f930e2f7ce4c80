"""
Process configuration, read from the environment (and a local .env file).
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl_minutes: int = 5

    host: str = "0.0.0.0"
    port: int = 8080
    shutdown_timeout: int = 5

    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_api_version: str = "2023-10-16"
    platform_fee_percent: int = 20
    platform_fee_destination: str = ""

    sendgrid_api_key: str = ""
    mail_from: str = "no-reply@companyemail.com"
    mail_from_name: str = "Escola do Jogo"

    app_name: str = "game-student"
    new_relic_license_key: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "Settings":
        load_dotenv(dotenv_path=env_file or BASE_DIR / ".env")

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

        jwt_secret = os.getenv("JWT_SECRET")
        if not jwt_secret:
            raise RuntimeError("JWT_SECRET is not set. Check your .env file.")

        return cls(
            database_url=database_url,
            jwt_secret=jwt_secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            token_ttl_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "5")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            shutdown_timeout=int(os.getenv("SHUTDOWN_TIMEOUT", "5")),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
            stripe_api_version=os.getenv("STRIPE_API_VERSION", "2023-10-16"),
            platform_fee_percent=int(os.getenv("PLATFORM_FEE_PERCENT", "20")),
            platform_fee_destination=os.getenv("PLATFORM_FEE_DESTINATION", ""),
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY", ""),
            mail_from=os.getenv("MAIL_FROM", "no-reply@companyemail.com"),
            mail_from_name=os.getenv("MAIL_FROM_NAME", "Escola do Jogo"),
            app_name=os.getenv("APP_NAME") or os.getenv("NEW_RELIC_APP_NAME", "game-student"),
            new_relic_license_key=os.getenv("NEW_RELIC_LICENSE_KEY") or os.getenv("NEW_RELIC_LICENSE", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
