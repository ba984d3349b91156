import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        identity_secret: str,
        identity_max_age_secs: int,
        csrf_secret: str,
        csrf_max_age_secs: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.identity_secret = identity_secret
        self.identity_max_age_secs = identity_max_age_secs
        self.csrf_secret = csrf_secret
        self.csrf_max_age_secs = csrf_max_age_secs
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    identity_secret = os.getenv(
        "FINANCE_IDENTITY_SECRET",
        "3f9c0e54d1a84b7c9e21f0b6a5d8c3e7f2a1b4c6d9e0f3a5b7c8d1e2f4a6b9c0",
    )
    identity_max_age_secs = int(os.getenv("FINANCE_IDENTITY_MAX_AGE_SECS", "3600"))
    csrf_secret = os.getenv(
        "FINANCE_CSRF_SECRET",
        "b81e4d07c2f95a3e6d1c8b4f0a7e29d5c3b6f8a1e4d7c0b9f2a5e8d1c4b7a0f3",
    )
    csrf_max_age_secs = int(os.getenv("FINANCE_CSRF_MAX_AGE_SECS", "7200"))
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        identity_secret=identity_secret,
        identity_max_age_secs=identity_max_age_secs,
        csrf_secret=csrf_secret,
        csrf_max_age_secs=csrf_max_age_secs,
        log_level=log_level,
    )
