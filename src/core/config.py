"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-payments", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(
        default=1_048_576,
        description="Maximum accepted request body size in bytes",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase service key for backend operations")

    # Paystack
    paystack_secret_key: str = Field(default="", description="Paystack secret API key")
    paystack_base_url: str = Field(default="https://api.paystack.co", description="Paystack API base URL")
    paystack_timeout_seconds: float = Field(default=30.0, description="Timeout for Paystack API calls")
    paystack_callback_url_base: str = Field(
        default="",
        description="Explicit base URL for the post-payment callback (e.g. https://shop.example.com)",
    )
    paystack_callback_path: str = Field(
        default="/checkout/callback",
        description="Storefront path Paystack redirects the shopper to",
    )
    default_currency: str = Field(default="NGN", description="Currency used when a request omits one")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_paystack_test_mode(self) -> bool:
        """Check if using Paystack test keys."""
        return self.paystack_secret_key.startswith("sk_test_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
