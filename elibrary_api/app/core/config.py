"""
Configuration management.

The ``Settings`` dataclass reads configuration from environment
variables via :meth:`Settings.from_env`.  Defaults are provided for
every field.  Settings are passed explicitly to ``create_app`` and
from there into each component's constructor; no service reads the
environment on its own.
"""

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings."""

    project_name: str = "eLibrary API"
    api_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    secret_key: str = "change_me"
    access_token_expire_minutes: int = 60 * 24

    # Path to the SQLite database file.  Relative paths are resolved
    # against the current working directory.
    database_url: str = "elibrary.db"

    # Directory where uploaded cover images are written and the public
    # URL prefix under which that directory is served.
    upload_path: str = "./public/images"
    images_url_prefix: str = "/images"

    # Paging bounds for the book list endpoint.
    default_page_size: int = 10
    max_page_size: int = 100

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            project_name=os.getenv("PROJECT_NAME", cls.project_name),
            api_version=os.getenv("API_VERSION", cls.api_version),
            debug=_env_bool("DEBUG"),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            log_file=os.getenv("LOG_FILE") or None,
            secret_key=os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET_KEY") or cls.secret_key,
            access_token_expire_minutes=int(
                os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(cls.access_token_expire_minutes))
            ),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            upload_path=os.getenv("UPLOAD_PATH", cls.upload_path),
            images_url_prefix=os.getenv("IMAGES_URL_PREFIX", cls.images_url_prefix),
        )

    @property
    def database_path(self) -> str:
        """Absolute path of the SQLite database file."""
        return os.path.abspath(self.database_url)

    @property
    def access_token_expire_seconds(self) -> int:
        return self.access_token_expire_minutes * 60
