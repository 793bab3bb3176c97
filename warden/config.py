"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    # ==========================================================================
    # Environment
    # ==========================================================================
    
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    
    # ==========================================================================
    # Authentication (identity only, no credential checks here)
    # ==========================================================================
    
    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30
    
    # Role claim that marks a caller as administrator
    admin_role: str = "ADMIN"
    
    # Accept "dev:<id>" / "dev:<id>:admin" bearer tokens outside production
    allow_dev_tokens: bool = True
    
    # ==========================================================================
    # Access control
    # ==========================================================================
    
    # YAML file with per-entity ownership descriptors ("" = config/ownership.yaml)
    ownership_config_path: str = ""
    
    # ==========================================================================
    # Helpers
    # ==========================================================================
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"
    
    @property
    def dev_tokens_enabled(self) -> bool:
        return self.allow_dev_tokens and not self.is_production
    
    class Config:
        env_prefix = "WARDEN_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
