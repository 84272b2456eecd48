"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./cashflow.db"

    # External Services
    transaction_feed_base: str = "http://localhost:8001"

    # Service
    service_name: str = "cashflow-planner"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Forecast generation runs through 31 Dec of (current year + horizon)
    forecast_horizon_years: int = 1

    # Liquidity defaults, overridable from the settings table
    opening_balance_cents: int = 0
    phase_defense_threshold_cents: int = 0
    phase_attack_threshold_cents: int = 500_000  # €5.000
    phase_growth_threshold_cents: int = 700_000  # €7.000

    # Share of a gross receipt left to the business after tax and partners
    available_income_ratio: str = "0.48"


settings = Settings()
