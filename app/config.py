import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings:
    @staticmethod
    def _get_int(name: str, default: int) -> int:
        return int(os.getenv(name, str(default)))

    @staticmethod
    def _get_float(name: str, default: float) -> float:
        return float(os.getenv(name, str(default)))

    @property
    def APP_ENV(self) -> str:
        return os.getenv("APP_ENV", "development").strip().lower()

    @property
    def DATABASE_URL(self) -> str:
        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        return database_url

    @property
    def DB_CONNECT_RETRIES(self) -> int:
        return self._get_int("DB_CONNECT_RETRIES", 10)

    @property
    def DB_CONNECT_RETRY_DELAY_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_RETRY_DELAY_SECONDS", 2)

    @property
    def JWT_SECRET(self) -> str:
        return os.getenv("JWT_SECRET", "change-me-in-production")

    @property
    def JWT_ALGORITHM(self) -> str:
        return os.getenv("JWT_ALGORITHM", "HS256")

    @property
    def PAYPAL_CLIENT_ID(self) -> str:
        return os.getenv("PAYPAL_CLIENT_ID", "")

    @property
    def PAYPAL_CLIENT_SECRET(self) -> str:
        return os.getenv("PAYPAL_CLIENT_SECRET", "")

    @property
    def PAYPAL_API_BASE(self) -> str:
        return os.getenv("PAYPAL_API_BASE", "https://api-m.sandbox.paypal.com").rstrip("/")

    @property
    def PAYPAL_CURRENCY(self) -> str:
        return os.getenv("PAYPAL_CURRENCY", "USD").strip().upper()

    @property
    def PAYPAL_TIMEOUT_SECONDS(self) -> float:
        return self._get_float("PAYPAL_TIMEOUT_SECONDS", 10.0)

    @property
    def STRIPE_SECRET_KEY(self) -> str:
        return os.getenv("STRIPE_SECRET_KEY", "")

    @property
    def STRIPE_WEBHOOK_SECRET(self) -> str:
        return os.getenv("STRIPE_WEBHOOK_SECRET", "")

    @property
    def STRIPE_SUCCESS_URL(self) -> str:
        return os.getenv("STRIPE_SUCCESS_URL", "http://localhost:3000/payment/success")

    @property
    def STRIPE_CANCEL_URL(self) -> str:
        return os.getenv("STRIPE_CANCEL_URL", "http://localhost:3000/payment/cancel")

    @property
    def STRIPE_CURRENCY(self) -> str:
        return os.getenv("STRIPE_CURRENCY", "usd").strip().lower()

    @property
    def RECHARGE_SERVICE_URL(self) -> str:
        return os.getenv("RECHARGE_SERVICE_URL", "").strip().rstrip("/")

    @property
    def RECHARGE_SERVICE_TOKEN(self) -> str:
        return os.getenv("RECHARGE_SERVICE_TOKEN", "")

    @property
    def RECHARGE_TIMEOUT_SECONDS(self) -> float:
        return self._get_float("RECHARGE_TIMEOUT_SECONDS", 10.0)

    @property
    def CORS_ORIGINS(self) -> str:
        return os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:3001")


settings = Settings()

# Validate critical settings
if settings.JWT_SECRET == "change-me-in-production":
    import warnings
    warnings.warn("JWT_SECRET is using default value. Change it in production!", UserWarning)
