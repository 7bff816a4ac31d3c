"""Configuration management using Pydantic Settings"""

from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # History persistence
    history_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./finpulse.db"
    report_history_limit: int = 10
    login_history_limit: int = 5

    # External Services
    reasoning_api_base: str = "http://localhost:8003"
    reasoning_timeout_seconds: float = 60.0

    # Service
    service_name: str = "finpulse-gateway"
    log_level: str = "INFO"

    # Retry policy for the reasoning service
    reasoning_max_attempts: int = 5
    reasoning_backoff_base_ms: int = 2000  # doubles per attempt: 2s, 4s, 8s, 16s
    reasoning_jitter_ms: int = 1000
    assessment_deadline_seconds: float | None = None  # hard cap across all retries, off by default

    # Progress sequence shown while an assessment runs
    progress_step_seconds: float = 0.7
    progress_settle_seconds: float = 1.2

    # Loan tenure policy
    tenure_candidates_months: List[int] = [12, 24, 36]
    emi_ceiling_ratio: float = 0.5  # EMI may not exceed this share of monthly revenue
    rate_band_policy_version: str = "rb-2024.1"
    rate_band_point: Literal["low", "mid", "high"] = "mid"
    fallback_annual_rate_pct: float = 14.0


settings = Settings()
