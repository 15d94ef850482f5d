# lms_core/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    central_database_url: str = 'postgresql+asyncpg://localhost:5432/lms_central'
    # Tenant databases live at {tenant_database_base_uri}/{tenant_key}
    tenant_database_base_uri: Optional[str] = None
    tenant_auto_create_schema: bool = False

    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_recycle: int = 1800

    app_name: str = 'lms_core'
    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'

    notifications_enabled: bool = True
    default_page_size: int = 10
    max_page_size: int = 100

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

settings = Settings()
