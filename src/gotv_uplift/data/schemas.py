"""
Module: schemas

Purpose: Pydantic models for the data structures shared across the uplift report.

All models use Pydantic v2 for validation with strict type hints.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class TreatmentArm(str, Enum):
    """Mailer arms of the GOTV social-pressure experiment (control first)."""

    CONTROL = "Control"
    CIVIC_DUTY = "Civic Duty"
    HAWTHORNE = "Hawthorne"
    SELF = "Self"
    NEIGHBORS = "Neighbors"

    @classmethod
    def ordered(cls) -> list["TreatmentArm"]:
        """Arms in encoding order; index 0 is the control baseline."""
        return list(cls)

    @classmethod
    def from_label(cls, label: str) -> "TreatmentArm":
        """Resolve a raw label such as ``" civic duty"`` to an arm."""
        normalized = " ".join(str(label).split()).lower()
        for arm in cls:
            if arm.value.lower() == normalized:
                return arm
        raise ValueError(f"Unknown treatment label: {label!r}")


# =============================================================================
# BASE MODELS
# =============================================================================


class BaseSchema(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


# =============================================================================
# TREATMENT COSTS
# =============================================================================


class TreatmentCost(BaseSchema):
    """Per-household cost of sending one mailer arm."""

    arm: TreatmentArm
    cost: float = Field(ge=0.0)


DEFAULT_TREATMENT_COSTS: dict[TreatmentArm, float] = {
    TreatmentArm.CONTROL: 0.0,
    TreatmentArm.CIVIC_DUTY: 1.0,
    TreatmentArm.HAWTHORNE: 1.0,
    TreatmentArm.SELF: 1.25,
    TreatmentArm.NEIGHBORS: 1.5,
}


# =============================================================================
# DATASET SUMMARY
# =============================================================================


class DatasetSummary(BaseSchema):
    """Descriptive statistics of a loaded GOTV frame."""

    n_rows: int = Field(ge=0)
    n_households: int | None = None
    arm_counts: dict[str, int]
    turnout_by_arm: dict[str, float]
    overall_turnout: float = Field(ge=0.0, le=1.0)

    @field_validator("turnout_by_arm")
    @classmethod
    def validate_rates(cls, v: dict[str, float]) -> dict[str, float]:
        for arm, rate in v.items():
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"Turnout rate for {arm} outside [0, 1]: {rate}")
        return v

    def lift_over_control(self) -> dict[str, float]:
        """Raw difference in turnout between each arm and control."""
        base = self.turnout_by_arm.get(TreatmentArm.CONTROL.value, 0.0)
        return {
            arm: rate - base
            for arm, rate in self.turnout_by_arm.items()
            if arm != TreatmentArm.CONTROL.value
        }


# =============================================================================
# MODEL OUTPUTS
# =============================================================================


class TradeoffPoint(BaseSchema):
    """One point on the turnout/cost tradeoff curve.

    ``model_erupt`` is the expected response under the model's policy for the
    given objective weights. ``random_erupt`` is the same treatment mix
    assigned at random.
    """

    objective_weights: tuple[float, ...]
    model_erupt: dict[str, float]
    model_erupt_se: dict[str, float]
    random_erupt: dict[str, float]
    treatment_shares: dict[str, float]
    n_matched: int = Field(ge=0)

    @property
    def vote_value(self) -> float:
        return self.objective_weights[0]


class VariableImportance(BaseSchema):
    """Permutation importance of one explanatory variable."""

    variable: str
    importance_mean: float
    importance_std: float = Field(ge=0.0)
    metric: str = "decision_change"
