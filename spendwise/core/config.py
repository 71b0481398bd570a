from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "Spendwise"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    # Storage backend: "sql" or "dynamo"
    STORAGE_BACKEND: str = Field(default="sql")

    # SQL (SQLite locally, PostgreSQL in production)
    DATABASE_URL: str = Field(default="sqlite:///./spendwise.db")

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: str = Field(default="")
    DYNAMO_USERS_TABLE: str = Field(default="spendwise-users")
    DYNAMO_CATEGORIES_TABLE: str = Field(default="spendwise-categories")
    DYNAMO_EXPENSES_TABLE: str = Field(default="spendwise-expenses")
    DYNAMO_BUDGETS_TABLE: str = Field(default="spendwise-budgets")
    DYNAMO_INSIGHTS_TABLE: str = Field(default="spendwise-insights")

    # JWT Authentication
    JWT_SECRET_KEY: str = Field(default="change-me-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days

    # OpenAI
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_MODEL: str = Field(default="gpt-4o")
    OPENAI_TIMEOUT_SECONDS: float = Field(default=20.0)

    CURRENCY_SYMBOL: str = "₹"
    SEED_DEFAULT_CATEGORIES: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
