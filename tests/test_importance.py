"""
Tests for permutation variable importance.
"""

import numpy as np
import pytest

from gotv_uplift.exceptions import DataValidationError
from gotv_uplift.features.encoding import treatment_matrix
from gotv_uplift.modeling.importance import importance_to_dict, permutation_importance

COSTS = np.array([0.0, 1.0, 1.0, 1.25, 1.5])


class FirstColumnModel:
    """Model stand-in where only the first explanatory variable drives uplift.

    Neighbors lifts turnout by 0.1 * x0; every other arm does nothing.
    """

    n_treatments = 5

    def predict_responses(self, x: np.ndarray) -> np.ndarray:
        n = len(x)
        out = np.zeros((n, 5, 2))
        out[:, :, 0] = 0.3
        out[:, 4, 0] += 0.1 * x[:, 0]
        out[:, :, 1] = COSTS
        return out


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def x() -> np.ndarray:
    rng = np.random.default_rng(1)
    return np.column_stack([rng.uniform(0, 1, 500), rng.normal(size=500)])


@pytest.fixture
def observed(x: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(2)
    idx = rng.choice([0, 4], size=len(x))
    uplift = np.where(idx == 4, 0.1 * x[:, 0], 0.0)
    voted = (rng.random(len(x)) < 0.3 + uplift).astype(float)
    y = np.column_stack([voted, COSTS[idx]])
    return y, treatment_matrix(idx, 5)


# Neighbors pays off when 100 * 0.1 * x0 > 1.5
WEIGHTS = np.array([100.0, -1.0])


class TestPermutationImportance:
    """Tests for permutation_importance."""

    def test_decision_change(self, x: np.ndarray) -> None:
        """Only the driving variable changes decisions."""
        results = permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0", "x1"], n_repeats=3)

        assert [r.variable for r in results] == ["x0", "x1"]
        scores = importance_to_dict(results)
        assert scores["x0"] > 0.05
        assert scores["x1"] == 0.0
        assert all(r.metric == "decision_change" for r in results)

    def test_deterministic(self, x: np.ndarray) -> None:
        """The same seed gives the same scores."""
        a = permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0", "x1"], seed=5)
        b = permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0", "x1"], seed=5)
        assert importance_to_dict(a) == importance_to_dict(b)

    def test_erupt_drop(self, x: np.ndarray, observed) -> None:
        """ERUPT drop is zero for an irrelevant variable."""
        y, t = observed
        results = permutation_importance(
            FirstColumnModel(),
            x,
            WEIGHTS,
            ["x0", "x1"],
            metric="erupt_drop",
            y=y,
            t=t,
        )
        scores = importance_to_dict(results)
        assert scores["x1"] == pytest.approx(0.0)
        assert all(r.metric == "erupt_drop" for r in results)

    def test_erupt_drop_requires_outcomes(self, x: np.ndarray) -> None:
        """erupt_drop needs observed responses and treatments."""
        with pytest.raises(ValueError, match="requires"):
            permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0", "x1"], metric="erupt_drop")

    def test_no_variables(self, x: np.ndarray) -> None:
        """A model without explanatory variables has nothing to rank."""
        assert permutation_importance(FirstColumnModel(), x[:, :0], WEIGHTS, []) == []

    def test_name_mismatch(self, x: np.ndarray) -> None:
        """One name per column."""
        with pytest.raises(DataValidationError):
            permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0"])

    def test_invalid_repeats(self, x: np.ndarray) -> None:
        """At least one shuffle per variable."""
        with pytest.raises(ValueError):
            permutation_importance(FirstColumnModel(), x, WEIGHTS, ["x0", "x1"], n_repeats=0)
