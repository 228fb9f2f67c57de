from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class MentorConfig:
    database_url: str
    redis_url: str
    llm_provider: str
    log_level: str
    environment: str
    cache_ttl_seconds: int
    cache_sweep_interval_seconds: float
    llm_max_attempts: int
    llm_request_timeout_seconds: float
    llm_coalesce_inflight: bool
    history_window: int
    cors_origins: tuple[str, ...]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> MentorConfig:
        return cls(
            database_url=os.environ.get(
                "DATABASE_URL", "sqlite+aiosqlite:///./gitgud.db"
            ),
            redis_url=os.environ.get("REDIS_URL", ""),
            llm_provider=os.environ.get("LLM_PROVIDER", "mock"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            environment=os.environ.get("ENVIRONMENT", "development"),
            cache_ttl_seconds=int(os.environ.get("LLM_CACHE_TTL_SECONDS", "3600")),
            cache_sweep_interval_seconds=float(
                os.environ.get("LLM_CACHE_SWEEP_INTERVAL", "60")
            ),
            llm_max_attempts=int(os.environ.get("LLM_MAX_ATTEMPTS", "4")),
            llm_request_timeout_seconds=float(
                os.environ.get("LLM_REQUEST_TIMEOUT", "30")
            ),
            llm_coalesce_inflight=_env_bool("LLM_COALESCE_INFLIGHT"),
            history_window=int(os.environ.get("CHAT_HISTORY_WINDOW", "50")),
            cors_origins=tuple(
                o.strip()
                for o in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
                if o.strip()
            ),
        )
