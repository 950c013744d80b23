from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    # App
    APP_NAME: str = "fintrack"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/fintrack"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    # Database migrations are handled outside this package by default
    CREATE_TABLES: bool = False

    # Money
    DEFAULT_CURRENCY: str = "BRL"

    # Asset search provider: DATABASE, BRAPI or ALPHA_VANTAGE
    ASSET_PROVIDER: str = "DATABASE"

    # brapi.dev
    BRAPI_BASE_URL: str = "https://brapi.dev/api"
    BRAPI_TOKEN: str = ""

    # Alpha Vantage (free plan allows 5 requests per minute)
    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co/query"
    ALPHA_VANTAGE_API_KEY: str = ""
    ALPHA_VANTAGE_REQUEST_DELAY: float = 12.0

    # Outbound HTTP
    HTTP_TIMEOUT: float = 30.0

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
