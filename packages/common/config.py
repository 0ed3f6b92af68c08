from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Strongly-typed settings model loaded from env / .env.

    Notes:
        - The database DSN and JWT verification material must be provided via
          environment variables.
        - No insecure defaults are shipped; application will fail-fast if missing.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        protected_namespaces=()
    )

    ENV: str = Field(..., description="Deployment environment, e.g. dev/staging/prod")
    SERVICE_NAME: str = Field(default="lms-assessment", description="Service name")
    LOG_LEVEL: str = Field(default="INFO", description="Root log level")

    DATABASE_DSN: str = Field(..., description="Async SQLAlchemy DSN, e.g. postgresql+asyncpg://...")

    JWT_PUBLIC_KEY: str = Field(..., description="JWT public key (must be provided)")
    JWT_ALGORITHMS: list[str] = Field(default=["RS256"], description="Accepted JWT signing algorithms")
    OIDC_ISSUER: str = Field(..., description="OIDC issuer URL")
    OIDC_AUDIENCE: str = Field(..., description="OIDC audience")

    PASS_PERCENTAGE: float = Field(
        default=50.0,
        ge=0,
        le=100,
        description="Pass threshold in percent for quizzes without pass marks",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance."""
    return Settings()
