"""
Application configuration management
"""
import re
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator

from ..exceptions.custom_exceptions import forbidden

# Environment name prefixes. An environment name must start with one of these.
PRODUCTION_PREFIX = "production"
TEST_PREFIX = "test"
DEVELOPMENT_PREFIX = "development"

ENVIRONMENT_PATTERN = re.compile(r"^[a-z][a-z0-9]+$")


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    debug: bool = Field(default=False)

    # Environment name, eg "production", "test2", "development"
    environment: str = Field(default=DEVELOPMENT_PREFIX)

    # Request handling
    request_timeout: float = Field(default=0.0, ge=0)  # seconds, 0 means no deadline
    close_poll_interval: float = Field(default=0.5, gt=0)  # seconds
    max_content_length: int = Field(default=16 * 1024 * 1024)  # 16MB

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Security
    api_key: Optional[str] = Field(default=None)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, value: str) -> str:
        """Environment names are lower case and start with a known prefix"""
        if not ENVIRONMENT_PATTERN.match(value):
            raise ValueError(f"invalid environment name: {value!r}")
        if not value.startswith((PRODUCTION_PREFIX, TEST_PREFIX, DEVELOPMENT_PREFIX)):
            raise ValueError(f"invalid environment name: {value!r}")
        return value

    @property
    def is_production(self) -> bool:
        """Check if running in a production environment"""
        return self.environment.startswith(PRODUCTION_PREFIX)

    @property
    def is_test(self) -> bool:
        """Check if running in a test environment"""
        return self.environment.startswith(TEST_PREFIX)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.debug or self.environment.startswith(DEVELOPMENT_PREFIX)

    def check_test(self) -> None:
        """
        Guard operations that may only run in a test environment

        Raises:
            HTTPScopeError: 403 if the environment is not a test environment
        """
        if not self.is_test:
            raise forbidden("this operation can only be performed in a test environment")

    def name_for(self, name: str) -> str:
        """
        Create an environment-specific name for tables, queues and other objects

        If the environment is "test", then name_for("tablename") returns
        "tablename_test". The separator is the first of "_", "-", "." found
        in the name.

        Args:
            name: Base name of the object

        Returns:
            Environment-specific name
        """
        separator = next((s for s in ("_", "-", ".") if s in name), "_")
        return f"{name}{separator}{self.environment}"


# Global settings instance
settings = Settings()
