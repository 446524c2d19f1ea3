"""
Configuration Validator
Production-grade configuration validation using Pydantic.
Ensures all required settings are present before server starts.
Supports Docker secrets for production deployments.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
import logging
import os
from dotenv import load_dotenv
from pathlib import Path

logger = logging.getLogger(__name__)


def read_secret(secret_name: str, default: str = "") -> str:
    """
    Read secret from Docker secrets or environment variable.

    Docker secrets are mounted at /run/secrets/<secret_name>.
    Falls back to environment variable if secret file doesn't exist.

    Args:
        secret_name: Name of the secret (e.g., 'api_keys')
        default: Default value if neither secret nor env var exists

    Returns:
        Secret value or default
    """
    secret_path = Path(f"/run/secrets/{secret_name}")
    if secret_path.exists():
        try:
            return secret_path.read_text().strip()
        except OSError as e:
            logger.warning(f"Could not read Docker secret '{secret_name}': {e}")

    return os.getenv(secret_name.upper(), default)


class AppConfig(BaseSettings):
    """Application configuration with validation"""

    # Server Configuration
    HOST: str = Field("0.0.0.0", description="Server host")
    PORT: int = Field(8000, ge=1, le=65535, description="Server port")
    ENVIRONMENT: str = Field(
        "development", pattern="^(development|staging|production)$")

    # Security Settings
    API_KEY_HEADER: str = Field(
        "X-API-Key", description="Header name for API key")
    API_KEYS: str = Field(
        "", description="Comma-separated list of valid API keys (empty disables auth)")
    ALLOWED_ORIGINS: str = Field(
        "http://localhost:3000,http://localhost:8080", description="Comma-separated CORS origins")

    # Analysis Configuration
    DEFAULT_LANGUAGE: str = Field("ar", pattern="^(ar|en)$")
    MAX_UPLOAD_MB: int = Field(20, ge=1, le=500, description="Maximum statement upload size")

    # Logging Configuration
    LOG_LEVEL: str = Field(
        "INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FILE_PATH: str = Field("logs/finclick.log", description="Log file path")

    @field_validator("API_KEYS")
    @classmethod
    def validate_client_api_keys(cls, v):
        """Reject placeholder keys copied from .env.example"""
        keys = [key.strip() for key in v.split(",") if key.strip()]
        for key in keys:
            if key.lower().startswith("your_"):
                raise ValueError("API_KEYS contains a placeholder value. Check your .env file.")
        return v

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list"""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def api_keys_list(self) -> List[str]:
        """Parse API_KEYS into a list"""
        return [key.strip() for key in self.API_KEYS.split(",") if key.strip()]

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_keys_list)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


def load_config() -> AppConfig:
    """
    Load and validate application configuration.
    Reads from Docker secrets (if available) or environment variables.

    Raises:
        ValidationError: If configuration is invalid
        ValueError: If production CORS settings are unsafe

    Returns:
        AppConfig: Validated configuration object
    """
    load_dotenv()

    secret_value = read_secret('api_keys')
    if secret_value:
        os.environ['API_KEYS'] = secret_value

    config = AppConfig()

    if config.ENVIRONMENT == "production" and ("*" in config.ALLOWED_ORIGINS or "localhost" in config.ALLOWED_ORIGINS.lower()):
        raise ValueError(
            "CRITICAL: Cannot use '*' or 'localhost' in ALLOWED_ORIGINS for production environment. "
            "Specify exact domains (e.g., 'https://yourdomain.com')"
        )

    return config


def print_config_summary(config: AppConfig):
    """Print configuration summary at startup"""
    print("\n" + "="*60)
    print("   FinClick Analysis API - Configuration Summary")
    print("="*60)
    print(f"Environment:        {config.ENVIRONMENT}")
    print(f"Host:               {config.HOST}:{config.PORT}")
    print(f"CORS Origins:       {len(config.allowed_origins_list)} configured")
    print(f"Default Language:   {config.DEFAULT_LANGUAGE}")
    print(f"Max Upload:         {config.MAX_UPLOAD_MB} MB")
    print(f"Log Level:          {config.LOG_LEVEL}")
    print(f"API Keys:           {len(config.api_keys_list)} client keys configured")

    if config.ENVIRONMENT == "production":
        print("\n⚠️  PRODUCTION MODE - Security features active")
        print("   - CORS restricted to allowed origins")
        print("   - Error details hidden from clients")
    else:
        print(f"\n🔧 {config.ENVIRONMENT.upper()} MODE - Enhanced debugging enabled")

    print("="*60 + "\n")
