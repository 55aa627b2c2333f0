import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/stockroom.db")).resolve()
        self.database_timeout_seconds = self._get_float("DATABASE_TIMEOUT_SECONDS", default=5.0)
        self.access_token_secret = os.getenv("ACCESS_TOKEN_SECRET", "change-me")
        self.access_token_exp_days = self._get_int("ACCESS_TOKEN_EXP_DAYS", default=7)
        self.session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "accessToken")
        self.cookie_secure = self._get_bool("COOKIE_SECURE", default=False)
        self.otp_length = self._get_int("OTP_LENGTH", default=6)
        self.otp_ttl_minutes = self._get_int("OTP_TTL_MINUTES", default=10)
        self.otp_resend_cooldown_seconds = self._get_int("OTP_RESEND_COOLDOWN_SECONDS", default=60)
        self.otp_max_attempts = self._get_int("OTP_MAX_ATTEMPTS", default=5)
        self.otp_max_resends = self._get_int("OTP_MAX_RESENDS", default=5)
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "")
        self.smtp_timeout_seconds = self._get_float("SMTP_TIMEOUT_SECONDS", default=10.0)
        self.google_client_id = os.getenv("GOOGLE_CLIENT_ID")
        self.google_timeout_seconds = self._get_float("GOOGLE_TIMEOUT_SECONDS", default=5.0)
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["http://localhost:3000"]

    @property
    def session_max_age_seconds(self) -> int:
        return self.access_token_exp_days * 24 * 60 * 60

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @staticmethod
    def _get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be a number") from exc

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        normalized = value.strip().lower()
        if normalized in ("1", "true", "yes", "on"):
            return True
        if normalized in ("0", "false", "no", "off", ""):
            return False
        raise RuntimeError(f"Environment variable {key} must be a boolean")
