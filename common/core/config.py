from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "GitHub Inspector API"
    api_version: str = "1.0.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "github_inspector"
    db_use_nullpool: bool = False
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis (rate limiter storage)
    redis_host: Optional[str] = None
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> Optional[str]:
        """Construct Redis URL from components."""
        if not self.redis_host:
            return None
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def rate_limit_storage_uri(self) -> str:
        """Redis when configured, otherwise per-process memory."""
        return self.redis_connection_url or "memory://"

    # Google OAuth (ID token verification)
    google_client_id: str = ""
    google_jwks_uri: str = "https://www.googleapis.com/oauth2/v3/certs"

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_user_agent: str = "GitHub-Inspector/1.0"
    github_timeout_seconds: float = 10.0

    # OpenTelemetry
    otel_service_name: str = "github-inspector-api"
    otel_service_version: str = "1.0.0"

    # Axiom (exporting is skipped when no token is set)
    axiom_token: str = ""
    axiom_dataset: str = ""

    @property
    def docs_enabled(self) -> bool:
        return self.environment == Environment.LOCAL

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return [
            "https://github-inspector.app",
        ]


settings = Settings()
