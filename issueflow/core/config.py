from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ISSUEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "issueflow"
    log_level: str = "INFO"
    json_logs: bool = True

    # Intake
    testing_phase_days: int = 12  # reports accepted up to N days after the first one

    # Comments
    min_comment_length: int = 10

    # Milestone escalation
    bump_interval_days: int = 3
    critical_window_days: int = 2  # daysUntilDue at or below this forces CRITICAL


@lru_cache
def get_settings() -> Settings:
    return Settings()
