from decimal import Decimal
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="revshare/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Revenue Share Settlement API"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "postgres"
    POSTGRES_SCHEMA: str = "revshare"

    # DATABASE_URL이 지정되면 그대로 사용 (테스트용 sqlite 등)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Security
    SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"

    # Revenue provider (Smoobu)
    SMOOBU_API_KEY: str = ""
    SMOOBU_BASE_URL: str = "https://login.smoobu.com/api"
    SMOOBU_TIMEOUT_SECONDS: float = 30.0
    SMOOBU_PAGE_SIZE: int = 100

    # Earnings rules
    FIXED_EXPENSE_PER_QUARTER: Decimal = Decimal("2000.00")  # 유닛당 분기 고정비
    MANAGEMENT_FEE_PERCENT: Decimal = Decimal("0.08")  # 관리 수수료 비율 (0.08 = 8%)
    CURRENCY: str = "PHP"
    MIN_YEAR: int = 2020
    MAX_YEAR: int = 2100


settings = Settings()
