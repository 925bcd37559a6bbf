"""
Configuration module with environment-based settings.
Supports: development, staging, production
"""
from pydantic_settings import BaseSettings
from typing import List, Optional
from functools import lru_cache
from dotenv import load_dotenv
import os

# Load .env file
load_dotenv()


class BaseConfig(BaseSettings):
    """Base configuration shared across all environments."""

    # Application
    APP_NAME: str = "pos-checkout"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Commerce (order) API
    COMMERCE_API_BASE_URL: str = "http://localhost:3000/api"
    COMMERCE_CONSUMER_KEY: Optional[str] = None
    COMMERCE_CONSUMER_SECRET: Optional[str] = None
    ORDER_SUBMIT_TIMEOUT: float = 60.0

    # Inventory API
    INVENTORY_API_BASE_URL: str = "http://localhost:3000/api/proxy/flora-im"
    INVENTORY_CONSUMER_KEY: Optional[str] = None
    INVENTORY_CONSUMER_SECRET: Optional[str] = None
    INVENTORY_READ_TIMEOUT: float = 10.0
    INVENTORY_READ_MAX_RETRIES: int = 2
    INVENTORY_READ_RETRY_DELAY: float = 1.0
    INVENTORY_WRITE_TIMEOUT: float = 10.0
    INVENTORY_WRITE_MAX_RETRIES: int = 3
    INVENTORY_WRITE_RETRY_DELAY: float = 1.0

    # Business
    CONVERSION_SAFETY_CAP: float = 10.0
    ALLOWED_PAYMENT_METHODS: List[str] = ["cash", "card", "split", "other"]
    ORDER_CURRENCY: str = "USD"
    ORDER_CREATED_VIA: str = "posv1"

    # Security
    CORS_ORIGINS: List[str] = ["*"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


class DevelopmentConfig(BaseConfig):
    """Development environment configuration."""
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"


class ProductionConfig(BaseConfig):
    """Production environment configuration."""
    ENVIRONMENT: str = "production"
    DEBUG: bool = False
    LOG_LEVEL: str = "WARNING"

    # Stricter CORS in production
    CORS_ORIGINS: List[str] = []


class StagingConfig(BaseConfig):
    """Staging environment configuration."""
    ENVIRONMENT: str = "staging"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings() -> BaseConfig:
    """
    Factory function that returns the appropriate config based on ENVIRONMENT.
    Uses lru_cache for singleton pattern.
    """
    env = os.getenv("ENVIRONMENT", "development").lower()

    config_map = {
        "development": DevelopmentConfig,
        "dev": DevelopmentConfig,
        "staging": StagingConfig,
        "stage": StagingConfig,
        "production": ProductionConfig,
        "prod": ProductionConfig,
    }

    config_class = config_map.get(env, DevelopmentConfig)
    return config_class()


# Default settings instance
settings = get_settings()
