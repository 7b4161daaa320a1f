from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "RetailFlow"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./retailflow.db"
    ADMIN_USERNAME: str = "admin"
    ADMIN_EMAIL: str = "admin@retailflow.com"
    ADMIN_PASSWORD: str = "change-me"
    DEFAULT_CATEGORIES: str = "Electronics,Groceries,Office Supplies"
    POS_TAX_RATE: float = 0.08
    LOW_STOCK_THRESHOLD: int = 10
    ALERT_CRITICAL_THRESHOLD: int = 5
    INVENTORY_OVERSELL_POLICY: Literal["clamp", "reject"] = "clamp"
    REPORTS_MAX_DATE_RANGE_DAYS: int = 366
    STOCK_MOVEMENTS_MAX_PAGE_SIZE: int = 200
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True


settings = Settings()
