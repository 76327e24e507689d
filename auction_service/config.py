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

    @staticmethod
    def _require(name: str) -> str:
        value = os.getenv(name, "").strip()
        if not value:
            raise ValueError(f"{name} is required")
        return value

    @property
    def DATABASE_URL(self) -> str:
        return self._require("DATABASE_URL")

    @property
    def PAYMENT_SERVICE_URL(self) -> str:
        return self._require("PAYMENT_SERVICE_URL")

    @property
    def REGISTRY_SERVICE_URL(self) -> str:
        return self._require("REGISTRY_SERVICE_URL")

    @property
    def SERVICE_PORT(self) -> int:
        raw = self._require("SERVICE_PORT")
        try:
            port = int(raw)
        except ValueError:
            raise ValueError("SERVICE_PORT must be a valid integer") from None
        if port <= 0 or port > 65535:
            raise ValueError("SERVICE_PORT must be between 1 and 65535")
        return port

    @property
    def SERVICE_NAME(self) -> str:
        return os.getenv("SERVICE_NAME", "AuctionService")

    @property
    def SERVICE_HOST(self) -> str:
        return os.getenv("SERVICE_HOST", "auction-service")

    @property
    def SERVICE_ADDRESS(self) -> str:
        return f"http://{self.SERVICE_HOST}:{self.SERVICE_PORT}"

    @property
    def HTTP_TIMEOUT_SECONDS(self) -> float:
        return self._get_float("HTTP_TIMEOUT_SECONDS", 5.0)

    @property
    def DB_CONNECT_RETRIES(self) -> int:
        return self._get_int("DB_CONNECT_RETRIES", 10)

    @property
    def DB_CONNECT_RETRY_DELAY_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_RETRY_DELAY_SECONDS", 2)

    @property
    def DB_CONNECT_TIMEOUT_SECONDS(self) -> int:
        return self._get_int("DB_CONNECT_TIMEOUT_SECONDS", 5)

    @property
    def DB_LOCK_TIMEOUT_MS(self) -> int:
        return self._get_int("DB_LOCK_TIMEOUT_MS", 5000)

    @property
    def DB_STATEMENT_TIMEOUT_MS(self) -> int:
        return self._get_int("DB_STATEMENT_TIMEOUT_MS", 15000)

    @property
    def CORS_ORIGINS(self) -> str:
        return os.getenv("CORS_ORIGINS", "http://localhost:3000")


settings = Settings()
