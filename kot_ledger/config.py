"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="KOT_", extra="ignore"
    )

    # Database (embedded by default)
    database_url: str = "sqlite:///./kot_ledger.db"

    # Service
    service_name: str = "kot-ledger"
    log_level: str = "INFO"

    # Money
    currency_symbol: str = "₹"
    minor_units_per_major: int = 100
    rounding_tolerance_minor: int = 1  # ±0.01 major unit
    max_transaction_amount: int = 100_000_000

    # Billing
    auto_apply_advance_on_billing: bool = False
    default_ledger_limit: int = 100

    # Bill and voucher numbers restart every financial year (India: April, IST)
    fiscal_year_start_month: int = 4
    shop_utc_offset_minutes: int = 330


settings = Settings()
