import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


def load_server_config() -> Dict[str, Any]:
    """Load server configuration from config.yml"""
    config_path = Path(os.getenv("MMO_CONFIG_PATH", "/app/mmo_server/config.yml"))
    if not config_path.exists():
        # Fallback to relative path for development
        config_path = Path("mmo_server/config.yml")

    if config_path.exists():
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


# Load server config from YAML
server_config = load_server_config()
_database_config = server_config.get("database", {}) or {}
_characters_config = server_config.get("characters", {}) or {}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database connection settings (config.yml provides defaults, env overrides)
    DB_DRIVER: str = _database_config.get("driver", "postgresql+asyncpg")
    DB_HOST: str = _database_config.get("host", "localhost")
    DB_PORT: int = int(_database_config.get("port", 5432))
    DB_NAME: str = _database_config.get("name", "hytale_mmo")
    DB_USER: str = _database_config.get("user", "postgres")
    DB_PASSWORD: str = str(_database_config.get("password", ""))
    DB_USE_SSL: bool = bool(_database_config.get("use_ssl", False))

    # Full URL override, takes precedence over the individual DB_* fields
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "").lower() in ("true", "1", "yes")

    # Character settings
    AUTOSAVE_INTERVAL_MINUTES: float = float(
        os.getenv(
            "AUTOSAVE_INTERVAL_MINUTES",
            str(_characters_config.get("autosave_interval_minutes", 10)),
        )
    )
    DEFAULT_CHARACTER_CLASS: str = _characters_config.get("default_class", "Adventurer")

    # Logging settings
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    @model_validator(mode="after")
    def validate_autosave_interval(self) -> "Settings":
        """Autosave must fire at a positive interval."""
        if self.AUTOSAVE_INTERVAL_MINUTES <= 0:
            raise ValueError("AUTOSAVE_INTERVAL_MINUTES must be greater than zero")
        return self

    @property
    def autosave_interval_seconds(self) -> float:
        return self.AUTOSAVE_INTERVAL_MINUTES * 60.0

    def database_url(self) -> URL:
        """
        Build the SQLAlchemy URL for the character store.

        DATABASE_URL wins when set; otherwise the URL is assembled from the
        individual DB_* settings so passwords never need escaping by hand.
        """
        if self.DATABASE_URL:
            return make_url(self.DATABASE_URL)

        return URL.create(
            drivername=self.DB_DRIVER,
            username=self.DB_USER,
            password=self.DB_PASSWORD or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
        )

    def database_connect_args(self) -> Dict[str, Any]:
        """Driver-level connect arguments (TLS for asyncpg)."""
        if self.DB_USE_SSL and self.database_url().drivername.endswith("asyncpg"):
            return {"ssl": True}
        return {}


settings = Settings()
