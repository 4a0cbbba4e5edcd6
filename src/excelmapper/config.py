"""Configuration management for Excel Mapper."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _parse_cors_origins() -> list[str]:
    """Parse CORS origins from environment variable."""
    cors_env = os.getenv("CORS_ALLOW_ORIGINS")
    if cors_env:
        return cors_env.split(",")
    return ["*"]


class Settings(BaseModel):
    """Application settings."""

    # Server settings
    host: str = os.getenv("HOST", "127.0.0.1")
    port: int = int(os.getenv("PORT", "8000"))
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS settings (comma-separated list of allowed origins, or * for all)
    cors_allow_origins: list[str] = _parse_cors_origins()

    # Upload limits
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))
    max_rows_per_sheet: int = int(os.getenv("MAX_ROWS_PER_SHEET", "100000"))

    # Preview settings
    preview_row_limit: int = int(os.getenv("PREVIEW_ROW_LIMIT", "5"))  # Rows returned by process-mapping
    header_preview_rows: int = int(os.getenv("HEADER_PREVIEW_ROWS", "10"))  # Rows shown in the header-row picker


settings = Settings()
