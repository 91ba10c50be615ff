# taskdesk/config/settings.py
# Environment-driven configuration for the API server and client

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Application settings read from the environment (.env supported)"""

    # Database
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskdesk.db")

    # Token verification (issuance lives outside this service)
    SECRET_KEY = os.getenv("SECRET_KEY")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")

    # CORS
    CORS_ORIGINS = _split(os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
    ))

    # Role keys the assignable-user resolver treats as directors
    DIRECTOR_ROLE_ALIASES = _split(os.getenv("DIRECTOR_ROLE_ALIASES", "director"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Client
    API_URL = os.getenv("TASKDESK_API_URL", "http://localhost:8000")
    API_TIMEOUT = float(os.getenv("TASKDESK_API_TIMEOUT", "15"))

    # Server launcher
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    RELOAD = os.getenv("RELOAD", "true").lower() == "true"

    @classmethod
    def is_postgres(cls) -> bool:
        return cls.DATABASE_URL.lower().startswith("postgres")

    @classmethod
    def is_sqlite(cls) -> bool:
        return cls.DATABASE_URL.lower().startswith("sqlite")


settings = Settings()
