"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal, Union, List
from pydantic import field_validator


class Settings(BaseSettings):
    """
    Review service settings.

    Every field can be set from the environment with the ``CORTEX_`` prefix
    (``CORTEX_STORAGE_BACKEND=memory``) or from a ``.env`` file.
    """

    app_name: str = "Cortex Security Review"
    app_version: str = "1.0.0"
    debug: bool = False

    # HTTP
    api_prefix: str = "/api/v1"
    cors_origins: Union[List[str], str] = ["http://localhost:3000"]

    # Session storage
    storage_backend: Literal["memory", "sql"] = "sql"
    database_url: str = "sqlite:///./data/cortex-review.db"
    storage_key: str = "cortex_security_sessions"

    # Validation workflow
    orphan_validation_policy: Literal["retain", "prune"] = "retain"
    default_validator: str = "current-user"

    model_config = SettingsConfigDict(
        env_prefix="CORTEX_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v: Union[List[str], str]) -> List[str]:
        """Accept a comma separated origin list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("storage_key")
    @classmethod
    def storage_key_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("storage_key must not be blank")
        return v


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings (read once)."""
    return Settings()
