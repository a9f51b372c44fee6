import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    API_BASE_URL: str = "http://localhost:8000"
    AUTH_API_URL: str | None = None
    CUSTOMER_URL: str = "http://localhost:5173"
    STATE_DB_URL: str = "sqlite:///./scanorder-state.db"
    REQUEST_TIMEOUT: float = 10.0

    # canonical rule set for every order placed from this client
    TAX_RATE: float = 0.08
    SERVICE_FEE_RATE: float = 0.05
    CURRENCY: str = "usd"

    PAYMENT_POLL_MAX_ATTEMPTS: int = 3
    PAYMENT_POLL_DELAY: float = 3.0
    PAYMENT_PROCESSING_MAX_RETRIES: int = 10
    REDIRECT_DELAY: float = 1.5
    COOKIE_MAX_AGE: int = 86400
    LOG_LEVEL: str = "INFO"

    # dev backend only
    DEV_SECRET: str = "dev-secret"
    JWT_ISS: str = "scanorder"
    JWT_EXP_MIN: int = 12*60

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def auth_url(self) -> str:
        if self.AUTH_API_URL:
            return self.AUTH_API_URL.rstrip("/")
        return f"{self.API_BASE_URL.rstrip('/')}/api/auth"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
