"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from engine.core.models import WithdrawalPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://localhost/earnings"
    database_echo: bool = False

    # Redis (for Dramatiq)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Referral bonus (source revisions used both 0.05 and 0.08)
    referral_bonus_rate: Decimal = Field(
        default=Decimal("0.05"), ge=0, lt=1,
        description="Share of a referred member's deposit credited to the referrer"
    )

    # Withdrawal policy
    withdrawal_fee_rate: Decimal = Field(
        default=Decimal("0"), ge=0, lt=1,
        description="Fee charged on top of the withdrawn amount"
    )
    min_withdrawal: Decimal = Field(
        default=Decimal("0"), ge=0,
        description="Minimum withdrawal amount"
    )
    min_deposit: Decimal = Field(
        default=Decimal("0"), ge=0,
        description="Minimum deposit amount (deposits must also be > 0)"
    )

    # Tiers
    default_daily_return_rate: Decimal = Field(
        default=Decimal("0.015"), ge=0, lt=1,
        description="Daily rate for every paying tier of the built-in table"
    )
    tier_table_path: str | None = Field(
        default=None,
        description="JSON file replacing the built-in tier table"
    )

    # Settlement
    settlement_stale_threshold_hours: int = Field(
        default=24, gt=0,
        description="Batch job settles accounts not settled for this long"
    )
    ticker_interval_seconds: float = Field(
        default=1.0, gt=0,
        description="Cadence of the live earnings projection"
    )

    # Optimistic transaction retries
    transaction_max_attempts: int = Field(
        default=5, ge=1,
        description="Attempts before a conflicting transaction is surfaced"
    )
    transaction_retry_base_delay: float = Field(
        default=0.05, ge=0,
        description="Exponential backoff base delay in seconds"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")
        ):
            raise ValueError(
                "DATABASE_URL must start with postgresql://, "
                "postgresql+asyncpg:// or sqlite+aiosqlite://"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production":
            # DEBUG must be False in production
            if self.debug:
                raise ValueError(
                    "DEBUG must be False in production environment. "
                    "Set DEBUG=false in your .env file."
                )

            if self.database_url.startswith("sqlite"):
                logger.warning(
                    "DATABASE_URL points to SQLite in production. "
                    "Concurrent writers will serialize on the database file."
                )
        return self

    def withdrawal_policy(self) -> WithdrawalPolicy:
        """Withdrawal floor and fee as a policy object."""
        return WithdrawalPolicy(
            min_withdrawal=self.min_withdrawal,
            fee_rate=self.withdrawal_fee_rate,
        )


# Global settings instance
settings = Settings()
