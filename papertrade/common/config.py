import os
import secrets
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# APP_ENV 에 맞는 .env 파일을 먼저 로드한다 (.env.development, .env.production ...)
APP_ENV = os.getenv("APP_ENV", "development")
load_dotenv(f".env.{APP_ENV}")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    APP_ENV: str = "development"

    # 데이터베이스 설정
    DATABASE_URL: str = "sqlite:///./papertrade.db"
    SQL_ECHO: bool = False

    # 로깅 설정
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 인증 설정
    JWT_SECRET_KEY: str = Field(default_factory=lambda: secrets.token_hex(32))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # 시세 조회 / 캐시 설정
    UPSTREAM_TIMEOUT_SECONDS: float = 15.0
    QUOTE_CACHE_MINUTES: int = 5
    HISTORICAL_CACHE_HOURS: int = 1
    SEARCH_CACHE_MINUTES: int = 60
    COMPARE_DELAY_SECONDS: float = 0.2
    MARKET_SUFFIX: str = ".NS"
    DEFAULT_CURRENCY: str = "INR"
    DEFAULT_EXCHANGE: str = "NSI"

    # 스케줄러 설정
    CACHE_SWEEP_INTERVAL_MINUTES: int = 60

    SEED_STOCK_MASTER: Optional[bool] = None

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def should_seed(self) -> bool:
        if self.SEED_STOCK_MASTER is None:
            return self.is_development
        return self.SEED_STOCK_MASTER


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
