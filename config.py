from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from errors import StartupError

BASE_DIR = Path(__file__).resolve().parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # --- Database ---
    db_url: str = Field(validation_alias="DB_URL")
    db_echo: bool = Field(default=False, validation_alias="DB_ECHO")
    create_tables: bool = Field(default=False, validation_alias="CREATE_TABLES")

    # --- Server ---
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # --- Rendering ---
    templates_dir: Path = Field(default=BASE_DIR / "templates", validation_alias="TEMPLATES_DIR")


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        raise StartupError(f"Invalid configuration (is DB_URL set?): {e}") from e
