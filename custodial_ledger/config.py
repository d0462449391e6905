"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from typing import Optional


class LedgerConfig(BaseSettings):
    """Custodial ledger configuration"""

    # Bank defaults, used when the host constructs a fresh bank
    bank_owner: str = "owner"
    default_asset_id: int = 0
    default_maximum_accounts: int = Field(0, ge=0, le=2 ** 16 - 1)

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090
    api_caller_header: str = "X-Caller"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stderr

    # Feature flags
    enable_outcome_logging: bool = True

    @field_validator("default_asset_id")
    @classmethod
    def check_asset_id(cls, value: int) -> int:
        if value < 0 or value > 2 ** 128 - 1:
            raise ValueError("default_asset_id must be an unsigned 128-bit integer")
        return value

    class Config:
        env_prefix = "LEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LedgerConfig()


def get_config() -> LedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LedgerConfig:
    """Reload configuration from environment"""
    global config
    config = LedgerConfig()
    return config
