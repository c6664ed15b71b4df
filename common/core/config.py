from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import (
    CacheProviderType,
    DirectoryStoreProvider,
    Environment,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "checkin-billing"
    api_version: str = "1.0.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "checkin"
    db_use_nullpool: bool = False
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Directory store backing the tenant / organization / subscription records
    directory_store_provider: DirectoryStoreProvider = DirectoryStoreProvider.SQL

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Caching
    cache_provider: CacheProviderType = CacheProviderType.REDIS
    token_cache_ttl_seconds: int = 300  # Verified ID tokens are reused for 5 minutes

    # Rate limiting (slowapi storage backend)
    rate_limit_storage_uri: Optional[str] = None

    # OpenTelemetry
    otel_service_name: str = "checkin-billing-api"
    otel_service_version: str = "1.0.0"

    # Axiom (traces are only exported when a token is configured)
    axiom_token: Optional[str] = None
    axiom_dataset: str = "checkin-billing"

    # Firebase Auth
    firebase_project_id: Optional[str] = None
    google_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""

    # Frontend
    frontend_url: str = "http://localhost:3000"

    # Bulk import
    bulk_import_max_rows: int = 500

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:5173",
            ]
        return [self.frontend_url]

    @property
    def rate_limit_storage(self) -> str:
        """Storage URI for the rate limiter, defaults to the Redis connection."""
        return self.rate_limit_storage_uri or self.redis_connection_url


settings = Settings()
