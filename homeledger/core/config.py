from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path


class Settings(BaseSettings):
    PROJECT_NAME: str = "HomeLedger"
    PROJECT_VERSION: str = "1.2.0"
    API_V1_STR: str = "/api/v1"
    SERVER_HOST: str = "http://localhost:8001"

    # Storage
    DATA_DIR: Path = Path.home() / ".homeledger"
    DATABASE_URL: Optional[str] = None # Derived from DATA_DIR when not set
    SQL_ECHO: bool = False

    # Backups
    BACKUP_DIR: Optional[Path] = None # Defaults to DATA_DIR / "backups"
    MAX_BACKUP_BYTES: int = 50 * 1024 * 1024

    # Photo files, named by their image identifier
    PHOTO_DIR: Optional[Path] = None # Defaults to DATA_DIR / "photos"

    # Inventory defaults
    DEFAULT_CURRENCY: str = "USD"
    SEED_DEFAULTS: bool = True # Default property, rooms, categories and favorite tags on first open

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent.parent / ".env",
        env_file_encoding='utf-8',
        env_prefix="HOMELEDGER_",
        extra='ignore',
        case_sensitive=True
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite+aiosqlite:///{self.DATA_DIR / 'ledger.db'}"

    @property
    def backup_dir(self) -> Path:
        return self.BACKUP_DIR or (self.DATA_DIR / "backups")

    @property
    def photo_dir(self) -> Path:
        return self.PHOTO_DIR or (self.DATA_DIR / "photos")


def get_settings() -> Settings:
    """Build settings from the environment (and .env when present)."""
    return Settings()
