"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class DemobankConfig(BaseSettings):
    """Demo bank account core configuration"""
    
    # Storage configuration
    storage_backend: str = "memory"  # memory or sqlite
    sqlite_path: str = "demobank.db"
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Business rules configuration
    default_currency: str = "TRY"
    account_number_max_attempts: int = 10
    max_checking_accounts_per_customer: int = 3
    max_savings_accounts_per_customer: int = 2
    checking_monthly_fee: str = "5.00"
    investment_quarterly_fee: str = "25.00"
    
    # Feature flags
    enable_event_dispatch: bool = True
    
    class Config:
        env_prefix = "DEMOBANK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = DemobankConfig()


def get_config() -> DemobankConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> DemobankConfig:
    """Reload configuration from environment"""
    global config
    config = DemobankConfig()
    return config
