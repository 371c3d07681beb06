from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FUEL_INVOICE_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    # Export
    threshold_amount: Decimal = Field(default=Decimal("30000"))

    # GST
    home_state: str = Field(default="karnataka")

    # Authoritative line-tax service
    oracle_base_url: str = Field(default="http://localhost:5000")
    oracle_path: str = Field(default="/api/tenant/purchases/calculate-item")
    oracle_timeout: float = Field(default=5.0)

    log_level: str = Field(default="INFO")

    @field_validator("threshold_amount")
    @classmethod
    def _positive_threshold(cls, value: Decimal) -> Decimal:
        if value <= 0:
            raise ValueError("threshold_amount must be positive")
        return value


settings = Settings()
