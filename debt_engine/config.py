"""
Configuration Module

Environment-based engine configuration using pydantic-settings. There is no
module-level instance: build one with load_config() and hand it to the
DebtEngine that needs it.
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .currency import Currency


class EngineConfig(BaseSettings):
    """Debt engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="DEBT_ENGINE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Money
    default_currency: str = "USD"

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business rules
    payment_history_limit: int = 50
    percent_precision: int = 4  # Decimal places for percent_paid_off
    enforce_payment_day: bool = True  # Auto-update waits for the loan's payment day

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    @field_validator("default_currency")
    @classmethod
    def _known_currency(cls, value: str) -> str:
        code = value.upper()
        if code not in Currency.__members__:
            raise ValueError(f"Unsupported currency {value}")
        return code

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return value

    @property
    def currency(self) -> Currency:
        return Currency[self.default_currency]


def load_config(**overrides) -> EngineConfig:
    """Build a fresh configuration from the environment plus explicit overrides"""
    return EngineConfig(**overrides)
