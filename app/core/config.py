from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGO: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = []

    # per-counterparty balances also net out direct payments
    DETAILED_BALANCE_INCLUDES_PAYMENTS: bool = True

    class Config:
        env_file = ".env"

settings = Settings()
