from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_env: str
    db_path: str
    notion_page_id: str
    notion_api_base: str
    notion_token: str
    request_timeout: float

    @staticmethod
    def from_env() -> "Settings":
        def _s(name: str, default: str) -> str:
            return os.getenv(name, default).strip()

        def _f(name: str, default: str) -> float:
            return float(os.getenv(name, default).strip())

        return Settings(
            app_env=_s("APP_ENV", "dev"),
            db_path=_s("DB_PATH", "./_local/data/teum.db"),
            notion_page_id=_s("NOTION_PAGE_ID", ""),
            notion_api_base=_s("NOTION_API_BASE", "https://www.notion.so/api/v3"),
            notion_token=_s("NOTION_TOKEN_V2", ""),
            request_timeout=_f("NOTION_TIMEOUT", "30"),
        )
