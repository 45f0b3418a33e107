"""
Settings module - Pydantic env configuration
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # App
    app_name: str = "Hospital Management System Backend"
    node_env: str = "development"
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    port: int = 3000

    # Database (validated by PoolConfiguration, not here)
    db_host: Optional[str] = None
    db_port: int = 5432
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_name: Optional[str] = None

    # Pool tuning
    db_pool_max: int = 20
    db_idle_timeout_ms: int = 30000
    db_connection_timeout_ms: int = 2000

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @property
    def is_production(self) -> bool:
        return self.node_env.lower() == "production"


settings = Settings()
