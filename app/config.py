from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    APP_NAME: str = "Roommate Match API"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Matching settings
    CANDIDATE_LIMIT_DEFAULT: int = 20
    # When enabled the member who expressed interest cannot confirm it alone
    REQUIRE_MUTUAL_CONFIRMATION: bool = False

    # Messaging gateway settings
    GATEWAY_OPERATION_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
