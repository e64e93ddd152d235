"""Shared fixtures for the report, HTML and visual tests."""

import pytest

from gotv_uplift.data.schemas import DatasetSummary, TradeoffPoint, VariableImportance

ARMS = ["Control", "Civic Duty", "Hawthorne", "Self", "Neighbors"]


@pytest.fixture
def sample_summary() -> DatasetSummary:
    return DatasetSummary(
        n_rows=2000,
        n_households=1000,
        arm_counts={"Control": 1100, "Civic Duty": 220, "Hawthorne": 230, "Self": 220, "Neighbors": 230},
        turnout_by_arm={"Control": 0.30, "Civic Duty": 0.31, "Hawthorne": 0.32, "Self": 0.34, "Neighbors": 0.38},
        overall_turnout=0.32,
    )


@pytest.fixture
def sample_points() -> list[TradeoffPoint]:
    """A three-point curve; targeting gains most at vote value 20."""
    rows = [
        # vote value, model turnout, model cost, random turnout, neighbors share
        (0.0, 0.30, 0.00, 0.30, 0.0),
        (20.0, 0.35, 0.60, 0.32, 0.4),
        (50.0, 0.38, 1.50, 0.37, 1.0),
    ]
    return [
        TradeoffPoint(
            objective_weights=(vote_value, -1.0),
            model_erupt={"voted": turnout, "cost": cost},
            model_erupt_se={"voted": 0.01, "cost": 0.02},
            random_erupt={"voted": random_turnout, "cost": cost},
            treatment_shares={
                arm: (share if arm == "Neighbors" else (1.0 - share if arm == "Control" else 0.0))
                for arm in ARMS
            },
            n_matched=300,
        )
        for vote_value, turnout, cost, random_turnout, share in rows
    ]


@pytest.fixture
def sample_importances() -> list[VariableImportance]:
    return [
        VariableImportance(variable="p2004", importance_mean=0.21, importance_std=0.02),
        VariableImportance(variable="age", importance_mean=0.12, importance_std=0.01),
        VariableImportance(variable="sex", importance_mean=0.01, importance_std=0.005),
    ]
