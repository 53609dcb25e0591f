"""
Configuration management - loads settings from YAML and environment variables
"""

from pathlib import Path
from functools import lru_cache
from typing import Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

KIB = 1024
MIB = 1024 * KIB

# Photo uploads are capped tighter than CVs
DEFAULT_PHOTO_MAX_BYTES = 200 * KIB
DEFAULT_CV_MAX_BYTES = 1 * MIB


class UploadConfig(BaseModel):
    """Applicant document upload settings"""
    bucket: str = "applicant-documents"
    photo_prefix: str = "photos"
    cv_prefix: str = "cvs"
    photo_max_bytes: int = DEFAULT_PHOTO_MAX_BYTES
    cv_max_bytes: int = DEFAULT_CV_MAX_BYTES
    local_dir: str = "data/uploads"


class ExportConfig(BaseModel):
    """Applicant export settings"""
    max_experience_slots: int = 5
    placeholder: str = "-"


class DatabaseConfig(BaseModel):
    """Database settings (local backend only)"""
    path: str = "data/bluework.db"
    echo: bool = False


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000


class LoggingConfig(BaseModel):
    """Logging settings"""
    level: str = "INFO"
    file: str = "logs/bluework.log"
    max_size: int = 10
    backup_count: int = 5


class Settings(BaseSettings):
    """
    Main settings class that combines YAML config with environment variables.
    Environment variables take precedence.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # From environment variables
    backend: str = Field(default="supabase", alias="BACKEND")
    supabase_url: str = Field(default="", alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    admin_email: str = Field(default="admin@bluework.id", alias="ADMIN_EMAIL")
    admin_password: str = Field(default="", alias="ADMIN_PASSWORD")
    secure_cookies: bool = Field(default=False, alias="SECURE_COOKIES")

    # From YAML config
    uploads: UploadConfig = Field(default_factory=UploadConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[str | Path] = None) -> "Settings":
        """
        Load settings from YAML file and merge with environment variables.
        """
        if config_path is None:
            config_path = Path("config/settings.yaml")
        else:
            config_path = Path(config_path)

        yaml_config = {}
        if config_path.exists():
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist"""
        directories = [
            "data",
            self.uploads.local_dir,
            str(Path(self.logging.file).parent),
            "config",
        ]
        for dir_path in directories:
            Path(dir_path).mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Components take settings as a constructor argument; only entry points call this.
    """
    settings = Settings.load()
    settings.ensure_directories()
    return settings
