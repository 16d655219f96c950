from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "EBH - Quản lý vật liệu xây dựng"
    API_V1_STR: str = "/api/v1"
    # development | production; production hides internal error details
    ENVIRONMENT: str = "development"

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    DATABASE_URI: str = "sqlite:///./ebh_inventory.db"
    SQL_DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Material defaults
    DEFAULT_PRIMARY_UNIT: str = "Tấn"
    DEFAULT_SECONDARY_UNIT: str = "m³"
    DEFAULT_DENSITY: float = Field(default=1.5, gt=0, description="Tấn per m³ for new materials")

    # Receipt ledger
    RECEIPT_NUMBER_MAX_ATTEMPTS: int = Field(default=3, ge=1)

    # Dashboard
    DASHBOARD_RECENT_LIMIT: int = 5
    DASHBOARD_CHART_DAYS: int = 7

    # Reports
    REPORT_MAX_DAYS: int = Field(default=366, ge=1)

    # Daily inventory snapshot
    INVENTORY_SNAPSHOT_ENABLED: bool = True
    INVENTORY_SNAPSHOT_HOUR: int = 23  # 0-23
    INVENTORY_SNAPSHOT_MINUTE: int = 55  # 0-59

    class Config:
        case_sensitive = True
        env_file = ".env"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


settings = Settings()
logger.info(f"Loaded settings: API_V1_STR={settings.API_V1_STR}, ENVIRONMENT={settings.ENVIRONMENT}")
