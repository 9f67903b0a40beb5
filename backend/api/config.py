"""Global configuration for the retro catalog backend."""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    app_name: str = "Retro Catalog"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: Optional[Path] = Path("./logs")
    
    # API
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=3000, validation_alias="PORT")
    api_prefix: str = "/api"
    
    # Catalog storage
    db_path: Path = Path("./db.json")
    uploads_dir: Path = Path("./uploads")
    max_upload_size: int = 209715200  # 200MB
    
    # Startup
    reset_db: Optional[str] = None  # "1" or "true" opts in
    
    # Security
    cors_origins: List[str] = ["*"]
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
