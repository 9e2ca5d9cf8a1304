# herbal_ledger/core/config.py
import os
from typing import List
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


class Settings(BaseModel):
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Herbal Ledger")
    API_V1_STR: str = os.getenv("API_V1_STR", "/api")

    # CORS (env takes priority)
    BACKEND_CORS_ORIGINS: List[str] = _split_csv(
        os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ))

    # ---------- Storage ----------
    DATABASE_URL: str = os.getenv("DATABASE_URL",
                                  "sqlite:///./herbal_ledger.sqlite")
    DB_ECHO: bool = os.getenv("DB_ECHO",
                              "false").lower() in {"1", "true", "yes"}

    # Naive local timestamps are stamped in this zone
    TIMEZONE: str = os.getenv("TIMEZONE", "Asia/Shanghai")

    # ---------- Logging ----------
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
