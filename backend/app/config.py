"""
Service configuration — single source of truth for environment-driven settings.

Values are read when ``Settings.from_env()`` is called (app start-up), so tests
can point ``DATA_DIR`` and friends somewhere else with ``monkeypatch.setenv``.
A ``.env`` file in the working directory is loaded once at import.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


APP_VERSION: str = "1.0.0"

# Session lifetime defaults: 7 days
DEFAULT_SESSION_TTL_HOURS: int = 7 * 24
SESSION_COOKIE_NAME: str = "sid"

_DEFAULT_SECRET = "changethis_use_a_real_secret_in_production_64chars"


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass
class Settings:
    port: int = 3000
    data_dir: str = "./data"
    base_url: str = "http://localhost:3000"

    # WeCom (enterprise WeChat) self-built app credentials, server side only
    wecom_corp_id: str = ""
    wecom_corp_secret: str = ""
    wecom_agent_id: str = ""
    wecom_dev_allow_fallback: bool = False

    session_secret_key: str = _DEFAULT_SECRET
    session_algorithm: str = "HS256"
    session_ttl_hours: int = DEFAULT_SESSION_TTL_HOURS

    seed_demo_data: bool = True
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    log_level: str = "INFO"
    json_logs: bool = True

    @property
    def wecom_configured(self) -> bool:
        return bool(self.wecom_corp_id and self.wecom_corp_secret)

    @classmethod
    def from_env(cls) -> "Settings":
        port = int(os.getenv("PORT", "3000"))
        cors_default = f"http://localhost:{port}"
        return cls(
            port=port,
            data_dir=os.getenv("DATA_DIR", "./data"),
            base_url=os.getenv("BASE_URL", f"http://localhost:{port}").rstrip("/"),
            wecom_corp_id=os.getenv("WECOM_CORP_ID", ""),
            wecom_corp_secret=os.getenv("WECOM_CORP_SECRET", ""),
            wecom_agent_id=os.getenv("WECOM_AGENT_ID", ""),
            wecom_dev_allow_fallback=_env_flag("WECOM_DEV_ALLOW_FALLBACK"),
            session_secret_key=os.getenv("SESSION_SECRET_KEY", _DEFAULT_SECRET),
            session_algorithm=os.getenv("SESSION_ALGORITHM", "HS256"),
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", str(DEFAULT_SESSION_TTL_HOURS))),
            seed_demo_data=_env_flag("SEED_DEMO_DATA", "1"),
            cors_origins=[
                o.strip() for o in os.getenv("CORS_ORIGINS", cors_default).split(",") if o.strip()
            ],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=os.getenv("LOG_FORMAT", "json").lower() != "text",
        )
