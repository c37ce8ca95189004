from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path
from typing import FrozenSet


class Settings(BaseSettings):
    ENV: str = "development"
    DATA_DIR: Path = Path("data")  # one CSV per document collection lives here
    COINS_FILE: str = "coins.csv"  # catalog loaded upstream (id,name,symbol,...)
    SETTINGS_DOC_ID: str = "app"   # singleton document in the "settings" collection
    STORE_LOCK_TIMEOUT: float = 10.0

    # comma separated, e.g. ADMIN_EMAILS=alice@example.com,bob@example.com
    ADMIN_EMAILS: str = ""

    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: str = "http://localhost:3000"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def admin_emails(self) -> FrozenSet[str]:
        return frozenset(e.strip() for e in self.ADMIN_EMAILS.split(",") if e.strip())

    @property
    def cors_origins(self) -> list:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
