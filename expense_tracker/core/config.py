import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/expenses.db")).resolve()
        self.session_token_secret = os.getenv("SESSION_TOKEN_SECRET", "change-me")
        self.session_token_algorithm = os.getenv("SESSION_TOKEN_ALGORITHM", "HS256")
        self.session_token_exp_days = self._get_int("SESSION_TOKEN_EXP_DAYS", default=7)
        self.reset_token_exp_minutes = self._get_int("RESET_TOKEN_EXP_MINUTES", default=60)
        self.verify_token_exp_hours = self._get_int("VERIFY_TOKEN_EXP_HOURS", default=24)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.default_page_size = self._get_int("DEFAULT_PAGE_SIZE", default=50)
        self.max_page_size = self._get_int("MAX_PAGE_SIZE", default=200)
        self.expose_secret_tokens = self._get_bool("EXPOSE_SECRET_TOKENS", default=False)
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

        if self.default_page_size > self.max_page_size:
            raise RuntimeError("DEFAULT_PAGE_SIZE must not exceed MAX_PAGE_SIZE")

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
    def _get_bool(key: str, default: bool = False) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}
