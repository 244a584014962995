import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_key: str = os.getenv("API_KEY", "super-secret-key")

    # Database settings
    database_connection_string: str = os.getenv(
        "DATABASE_CONNECTION_STRING", "Data Source=./library.db"
    )
    database_timeout: float = float(os.getenv("DATABASE_TIMEOUT", "5.0"))

    # Security settings
    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*"))
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
