from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # DB URL (env: DATABASE_URL)
    database_url: str = Field(
        default="sqlite:///./dev.db",
        validation_alias="DATABASE_URL",
    )
    # "production" turns on forced HTTPS and secure cookies
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=3000, validation_alias="PORT")

    secret_key: str = Field(default="CHANGE_ME_SECRET", validation_alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")

    # Sessions
    session_cookie_name: str = Field(default="opentextbook_session", validation_alias="SESSION_COOKIE_NAME")
    session_max_age_seconds: int = Field(default=86400, validation_alias="SESSION_MAX_AGE_SECONDS")
    password_hash_rounds: int = Field(default=29000, validation_alias="PASSWORD_HASH_ROUNDS")

    # CORS
    cors_origins: str = Field(default="*", validation_alias="CORS_ORIGINS")  # comma separated list for production

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    create_tables_on_startup: bool = Field(default=True, validation_alias="CREATE_TABLES_ON_STARTUP")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
