"""
Tests for the pydantic schemas shared across the uplift report.
"""

import pytest
from pydantic import ValidationError

from gotv_uplift.data.schemas import (
    DEFAULT_TREATMENT_COSTS,
    DatasetSummary,
    TradeoffPoint,
    TreatmentArm,
    TreatmentCost,
    VariableImportance,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def summary() -> DatasetSummary:
    return DatasetSummary(
        n_rows=1000,
        n_households=500,
        arm_counts={"Control": 600, "Civic Duty": 100, "Neighbors": 300},
        turnout_by_arm={"Control": 0.30, "Civic Duty": 0.32, "Neighbors": 0.38},
        overall_turnout=0.33,
    )


# =============================================================================
# TREATMENT ARM TESTS
# =============================================================================


class TestTreatmentArm:
    """Tests for TreatmentArm."""

    def test_control_is_first(self) -> None:
        """Control is the baseline at index 0."""
        arms = TreatmentArm.ordered()
        assert arms[0] == TreatmentArm.CONTROL
        assert len(arms) == 5

    def test_from_label_strips_leading_space(self) -> None:
        """Labels from the public file carry a leading space."""
        assert TreatmentArm.from_label(" Civic Duty") == TreatmentArm.CIVIC_DUTY

    def test_from_label_case_and_whitespace(self) -> None:
        """Matching ignores case and collapses inner whitespace."""
        assert TreatmentArm.from_label("civic   DUTY") == TreatmentArm.CIVIC_DUTY
        assert TreatmentArm.from_label("neighbors") == TreatmentArm.NEIGHBORS

    def test_from_label_unknown(self) -> None:
        """Unknown labels raise ValueError."""
        with pytest.raises(ValueError, match="Unknown treatment label"):
            TreatmentArm.from_label("Postcard")

    def test_is_str(self) -> None:
        """Arms compare equal to their label."""
        assert TreatmentArm.SELF == "Self"


# =============================================================================
# TREATMENT COST TESTS
# =============================================================================


class TestTreatmentCost:
    """Tests for TreatmentCost and the default cost table."""

    def test_negative_cost_rejected(self) -> None:
        """Costs must be non-negative."""
        with pytest.raises(ValidationError):
            TreatmentCost(arm=TreatmentArm.SELF, cost=-1.0)

    def test_arm_from_label(self) -> None:
        """Arm is validated from its string value."""
        cost = TreatmentCost(arm="Hawthorne", cost=1.0)
        assert cost.arm == TreatmentArm.HAWTHORNE

    def test_default_costs_cover_all_arms(self) -> None:
        """Every arm has a default cost and control is free."""
        assert set(DEFAULT_TREATMENT_COSTS) == set(TreatmentArm)
        assert DEFAULT_TREATMENT_COSTS[TreatmentArm.CONTROL] == 0.0

    def test_frozen(self) -> None:
        """Schemas are immutable."""
        cost = TreatmentCost(arm=TreatmentArm.SELF, cost=1.0)
        with pytest.raises(ValidationError):
            cost.cost = 2.0


# =============================================================================
# DATASET SUMMARY TESTS
# =============================================================================


class TestDatasetSummary:
    """Tests for DatasetSummary."""

    def test_lift_over_control(self, summary: DatasetSummary) -> None:
        """Lift is the raw difference from control, control excluded."""
        lift = summary.lift_over_control()
        assert set(lift) == {"Civic Duty", "Neighbors"}
        assert lift["Neighbors"] == pytest.approx(0.08)

    def test_rate_out_of_range(self) -> None:
        """Turnout rates outside [0, 1] are rejected."""
        with pytest.raises(ValidationError, match="outside"):
            DatasetSummary(
                n_rows=10,
                arm_counts={"Control": 10},
                turnout_by_arm={"Control": 1.5},
                overall_turnout=0.5,
            )

    def test_extra_fields_forbidden(self) -> None:
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            DatasetSummary(
                n_rows=10,
                arm_counts={"Control": 10},
                turnout_by_arm={"Control": 0.5},
                overall_turnout=0.5,
                source="file.csv",
            )


# =============================================================================
# MODEL OUTPUT TESTS
# =============================================================================


class TestModelOutputs:
    """Tests for TradeoffPoint and VariableImportance."""

    def test_vote_value(self) -> None:
        """The vote value is the weight on the turnout response."""
        point = TradeoffPoint(
            objective_weights=(20.0, -1.0),
            model_erupt={"voted": 0.35, "cost": 0.8},
            model_erupt_se={"voted": 0.01, "cost": 0.02},
            random_erupt={"voted": 0.33, "cost": 0.8},
            treatment_shares={"Control": 0.4, "Neighbors": 0.6},
            n_matched=120,
        )
        assert point.vote_value == 20.0

    def test_negative_std_rejected(self) -> None:
        """Importance spread cannot be negative."""
        with pytest.raises(ValidationError):
            VariableImportance(variable="age", importance_mean=0.1, importance_std=-0.01)

    def test_default_metric(self) -> None:
        """The default metric is decision change."""
        imp = VariableImportance(variable="age", importance_mean=0.1, importance_std=0.0)
        assert imp.metric == "decision_change"
