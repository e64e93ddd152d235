"""
Module: settings

Purpose: Centralized configuration management for the uplift report.

Key Functions:
- get_settings: Load settings from environment variables
- Settings: Pydantic settings model with validation

Architecture Notes:
- Uses pydantic-settings for type-safe configuration
- All settings have sensible defaults
- Environment variables (GOTV_ prefix) override defaults
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gotv_uplift.data.schemas import DEFAULT_TREATMENT_COSTS, TreatmentArm, TreatmentCost


class Settings(BaseSettings):
    """Runtime settings read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="GOTV_",
        env_file=".env",
        extra="ignore",
    )

    data_path: Path | None = None
    output_dir: Path = Path("reports")
    random_seed: int = 42
    treatment_costs: dict[str, float] = Field(
        default_factory=lambda: {arm.value: cost for arm, cost in DEFAULT_TREATMENT_COSTS.items()}
    )
    log_level: str = "INFO"

    @field_validator("treatment_costs")
    @classmethod
    def validate_costs(cls, v: dict[str, float]) -> dict[str, float]:
        entries = [TreatmentCost(arm=TreatmentArm.from_label(label), cost=cost) for label, cost in v.items()]
        return {entry.arm.value: entry.cost for entry in entries}

    def cost_table(self) -> dict[TreatmentArm, float]:
        """Costs keyed by arm; arms missing from the env fall back to defaults."""
        table = dict(DEFAULT_TREATMENT_COSTS)
        for label, cost in self.treatment_costs.items():
            table[TreatmentArm(label)] = cost
        return table


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
