import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from gym_backend.db import DEFAULT_DATABASE_URL


def _origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    api_key: str = ""
    cors_allow_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000", "http://localhost:8501"])
    dev_bootstrap: bool = False
    log_level: str = "INFO"
    expiring_days: int = 7

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        load_dotenv(env_file)
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            api_key=os.getenv("API_KEY", ""),
            cors_allow_origins=_origins(os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000,http://localhost:8501")),
            dev_bootstrap=os.getenv("DEV_BOOTSTRAP", "0") == "1",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            expiring_days=int(os.getenv("EXPIRING_DAYS", "7")),
        )
