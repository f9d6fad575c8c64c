"""
Configuration settings for the retail ledger backend
"""
import os
from pathlib import Path
from typing import List

import dotenv
from pydantic_settings import BaseSettings

# Resolve .env relative to the project root so settings load regardless of cwd.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_CANDIDATES = [
    _PROJECT_ROOT / ".env",
    Path.cwd() / ".env",
]
_ENV_FILE = [str(p) for p in _ENV_CANDIDATES if p.is_file()]

for _p in _ENV_CANDIDATES:
    if _p.is_file():
        dotenv.load_dotenv(_p, override=False)
        break


class Settings(BaseSettings):
    """Application settings"""

    # App
    APP_NAME: str = "Retail Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "retail_ledger")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    # Applied per connection on PostgreSQL; a sale that exceeds it is rolled back whole.
    DB_STATEMENT_TIMEOUT_MS: int = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "30000"))
    # Tighter bound for the sale transaction itself (PostgreSQL SET LOCAL)
    SALE_TRANSACTION_TIMEOUT_MS: int = int(os.getenv("SALE_TRANSACTION_TIMEOUT_MS", "10000"))

    @property
    def database_connection_string(self) -> str:
        """Build database connection string"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # CORS - comma-separated
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://localhost:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list"""
        origins = [o.strip() for o in (self.CORS_ORIGINS or "").split(",") if o.strip()]
        return list(dict.fromkeys(origins))

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

    # Receipts (PDFs written to disk and served under RECEIPTS_URL_PATH)
    APP_PUBLIC_URL: str = os.getenv("APP_PUBLIC_URL", "http://localhost:8000")
    RECEIPTS_DIR: str = os.getenv("RECEIPTS_DIR", str(_PROJECT_ROOT / "receipts"))
    RECEIPTS_URL_PATH: str = "/receipts"

    # Inventory behaviour
    EXCLUDE_EXPIRED_BATCHES: bool = os.getenv("EXCLUDE_EXPIRED_BATCHES", "true").lower() in ("true", "1", "yes")

    class Config:
        env_file = _ENV_FILE if _ENV_FILE else [".env"]
        case_sensitive = True
        extra = "ignore"


settings = Settings()
