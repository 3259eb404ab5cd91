from datetime import UTC, datetime

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "data/requestbot.db"
    host: str = "0.0.0.0"
    port: int = 8000
    gateway_key: str | None = None
    stats_cutoff: datetime = datetime(2024, 6, 17, tzinfo=UTC)
    schedule_poll_seconds: int = 10
    min_schedule_seconds: int = 60
    resolve_attempts: int = 3
    max_tasks_per_request: int = 100
    rate_limit_enabled: bool = True
    rate_limit_interactions: str = "120/minute"
    rate_limit_read: str = "120/minute"

    model_config = {"env_prefix": "REQUESTBOT_"}


settings = Settings()
