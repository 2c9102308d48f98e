"""
Runtime configuration.

Values come from the environment, with a `.env` file in the working directory
loaded first (python-dotenv). Only the Supabase settings are required, and only
when the application has to build its own client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from services.automation_webhook import DEFAULT_TIMEOUT_SECONDS


def _split_origins(raw: str) -> List[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    automation_webhook_url: Optional[str] = None
    automation_webhook_timeout: float = DEFAULT_TIMEOUT_SECONDS
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        timeout_raw = os.getenv("AUTOMATION_WEBHOOK_TIMEOUT")
        try:
            timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise RuntimeError(
                f"Invalid AUTOMATION_WEBHOOK_TIMEOUT: {timeout_raw!r}. Expected a number of seconds."
            ) from None

        return cls(
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            automation_webhook_url=os.getenv("AUTOMATION_WEBHOOK_URL") or None,
            automation_webhook_timeout=timeout,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
        )
