"""
Settings for the tabular import service.

Values come from environment variables or a local ``.env`` file. List
settings are given as JSON, e.g. ``CSV_EXTENSIONS='["csv", "txt", "tsv"]'``.
"""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service settings."""

    # Service
    API_TITLE: str = "Cooperative Tabular Import API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Bulk-upload parsing, report export and upload templates for CSV and Excel files"
    API_PREFIX: str = "/api"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    RELOAD: bool = False

    # Uploads
    MAX_FILE_SIZE_MB: float = 10
    CSV_EXTENSIONS: List[str] = ["csv", "txt"]
    EXCEL_EXTENSIONS: List[str] = ["xlsx", "xls"]
    CSV_ENCODING: str = "utf-8-sig"
    MAX_SHEET_CELLS: int = 2_000_000

    # Downloads
    DEFAULT_SHEET_NAME: str = "Sheet1"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "api.log"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Dashboard origins
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Auth and tenancy
    API_KEY_HEADER: str = "X-API-Key"
    ENABLE_API_KEY_AUTH: bool = False
    TENANT_HEADER: str = "X-Tenant-Slug"

    @field_validator('CSV_EXTENSIONS', 'EXCEL_EXTENSIONS')
    @classmethod
    def normalize_extensions(cls, value: List[str]) -> List[str]:
        # '.CSV' and 'csv' name the same extension
        return [ext.strip().lower().lstrip('.') for ext in value if ext.strip()]

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.MAX_FILE_SIZE_MB * 1024 * 1024)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()


settings = get_settings()
