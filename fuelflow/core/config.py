from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "FuelFlow API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Diesel trading ledger and payment allocation API"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # MongoDB
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "fuelflow"
    # None detects replica set support at startup.
    MONGODB_TRANSACTIONS: Optional[bool] = None

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Ledger
    CURRENCY: str = "AED"
    DEFAULT_VAT_PERCENTAGE: Decimal = Decimal("5.00")
    # A sale or invoice counts as settled once the shortfall is below this.
    PAYMENT_TOLERANCE: Decimal = Decimal("0.01")
    OVERDUE_DAYS: int = 30

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env"
    )

settings = Settings()
