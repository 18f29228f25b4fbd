from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Admission
    max_jobs_allowed: int = 5

    # Ledger
    db_path: str = "data/executions.db"
    max_page_size: int = 100
    created_by: str = "cronprobe"  # stamped on every execution record

    # Probe
    probe_timeout_seconds: float = 30.0
    probe_follow_redirects: bool = True

    # Scheduler worker pool (0 = one worker per allowed job)
    scheduler_max_workers: int = 0

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"

    @property
    def worker_count(self) -> int:
        return self.scheduler_max_workers or self.max_jobs_allowed


settings = Settings()
