"""
Configuration management using Pydantic settings.
"""
from typing import List, Union
import os
from pydantic import AnyHttpUrl, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
load_dotenv()


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Honey Badger Challenges"
    ENV: str = os.getenv("ENV", "development")
    DEBUG: bool = True
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./honeybadger.db")
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:8081")

    # JWT Configuration
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me")
    ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))

    # Companion (honey badger) generation
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    COMPANION_MODEL: str = os.getenv("COMPANION_MODEL", "gpt-4o-mini")
    COMPANION_TEMPERATURE: float = 0.8
    COMPANION_MAX_TOKENS: int = 150
    COMPANION_LLM_TIMEOUT_SECONDS: float = float(os.getenv("COMPANION_LLM_TIMEOUT_SECONDS", 2.5))
    COMPANION_REPLY_DELAY_MIN: float = 1.0
    COMPANION_REPLY_DELAY_MAX: float = 3.0
    MAX_ACTIVE_COMPANIONS: int = 5

    # LangSmith Tracing Configuration
    LANGSMITH_TRACING: bool = os.getenv("LANGSMITH_TRACING", "false").lower() == "true"
    LANGSMITH_ENDPOINT: str = os.getenv("LANGSMITH_ENDPOINT", "")
    LANGSMITH_API_KEY: str = os.getenv("LANGSMITH_API_KEY", "")
    LANGSMITH_PROJECT: str = os.getenv("LANGSMITH_PROJECT", "")

    # Payments (reward escrow)
    STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    PAYMENT_CURRENCY: str = os.getenv("PAYMENT_CURRENCY", "usd")

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Union[List[AnyHttpUrl], str] = "*"

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if v == "*" or v == ["*"]:
            return "*"
        if isinstance(v, str):
            return [i.strip() for i in v.split(",")]
        return v

    @model_validator(mode="after")
    def check_companion_timing(self):
        # The generative call must give up before the slowest scheduled reply fires.
        if self.COMPANION_LLM_TIMEOUT_SECONDS >= self.COMPANION_REPLY_DELAY_MAX:
            raise ValueError("COMPANION_LLM_TIMEOUT_SECONDS must be below COMPANION_REPLY_DELAY_MAX")
        if self.COMPANION_REPLY_DELAY_MIN > self.COMPANION_REPLY_DELAY_MAX:
            raise ValueError("COMPANION_REPLY_DELAY_MIN must not exceed COMPANION_REPLY_DELAY_MAX")
        return self


settings = Settings()
