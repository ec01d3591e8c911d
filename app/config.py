from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────
    database_hostname: str
    database_port: str = "5432"
    database_password: str
    database_name: str
    database_username: str

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    # ── Twilio SMS ────────────────────────────────────────────
    # All three must be set for real delivery. Leaving any of them empty
    # switches to the console provider, which only logs the message.
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_base_url: str = "https://api.twilio.com"

    # ── OTP ───────────────────────────────────────────────────
    otp_expiry_minutes: int = 10
    otp_max_attempts: int = 3
    otp_rate_limit: int = 3
    otp_rate_window_minutes: int = 60

    # ── App ───────────────────────────────────────────────────
    cors_origins: str = "http://localhost:5173"
    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    @property
    def sms_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    class Config:
        env_file = ".env"
        # Case-insensitive so TWILIO_ACCOUNT_SID and twilio_account_sid both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader: reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
