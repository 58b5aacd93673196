"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class AtmConfig(BaseSettings):
    """ATM simulator configuration"""
    
    model_config = SettingsConfigDict(
        env_prefix="ATM_",
        env_file=".env",
        case_sensitive=False
    )
    
    # Store configuration
    store_path: str = "users.txt"  # Working-directory relative
    
    # Business rules configuration
    max_accounts: int = 10
    history_capacity: int = 10
    
    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8090
    max_sessions: int = 32  # Oldest session is closed past this many
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text


# Global configuration instance
config = AtmConfig()


def get_config() -> AtmConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> AtmConfig:
    """Reload configuration from environment"""
    global config
    config = AtmConfig()
    return config
