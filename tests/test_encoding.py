"""
Tests for treatment, response and explanatory encoding.
"""

import numpy as np
import pandas as pd
import pytest

from gotv_uplift.data.schemas import TreatmentArm
from gotv_uplift.data.synthetic_generator import generate_small_dataset
from gotv_uplift.exceptions import DataValidationError, InsufficientDataError
from gotv_uplift.features.encoding import (
    DEFAULT_EXPLANATORY,
    EncodingConfig,
    GOTVEncoder,
    encode_explanatory,
    encode_responses,
    encode_treatments,
    treatment_index,
    treatment_matrix,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def frame() -> pd.DataFrame:
    return generate_small_dataset(seed=21, n_households=400)


@pytest.fixture
def tiny_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "treatment": ["Control", "Civic Duty", "Neighbors", "Self"],
            "voted": [0, 1, 1, 0],
            "yob": [1950, 1980, 1941, 1966],
            "sex": [0, 1, 1, 0],
        }
    )


# =============================================================================
# TREATMENT ENCODING TESTS
# =============================================================================


class TestTreatmentEncoding:
    """Tests for the one-hot treatment matrix."""

    def test_index_matrix_inverse(self) -> None:
        """treatment_matrix and treatment_index round-trip arm indices."""
        idx = np.array([0, 1, 2, 3, 4, 0, 4])
        t = treatment_matrix(idx, 5)
        assert t.shape == (7, 4)
        np.testing.assert_array_equal(treatment_index(t), idx)

    def test_control_row_is_zero(self, tiny_frame: pd.DataFrame) -> None:
        """Control drops out of the one-hot encoding."""
        t = encode_treatments(tiny_frame["treatment"])
        assert t.shape == (4, 4)
        assert t[0].sum() == 0
        np.testing.assert_array_equal(t.sum(axis=1), [0, 1, 1, 1])

    def test_column_order(self, tiny_frame: pd.DataFrame) -> None:
        """Columns follow TreatmentArm order after control."""
        t = encode_treatments(tiny_frame["treatment"])
        assert t[1, 0] == 1.0  # Civic Duty
        assert t[2, 3] == 1.0  # Neighbors
        assert t[3, 2] == 1.0  # Self

    def test_unknown_label(self) -> None:
        """Labels must be normalised first."""
        with pytest.raises(DataValidationError, match="Unknown treatment"):
            encode_treatments(pd.Series([" Control", "Self"]))

    def test_index_requires_2d(self) -> None:
        """A 1-D treatment vector is rejected."""
        with pytest.raises(DataValidationError):
            treatment_index(np.array([0, 1, 0]))


# =============================================================================
# RESPONSE ENCODING TESTS
# =============================================================================


class TestResponseEncoding:
    """Tests for the (voted, cost) response matrix."""

    def test_default_costs(self, tiny_frame: pd.DataFrame) -> None:
        """Cost is the received arm's cost."""
        y = encode_responses(tiny_frame)
        np.testing.assert_array_equal(y[:, 0], [0, 1, 1, 0])
        np.testing.assert_allclose(y[:, 1], [0.0, 1.0, 1.5, 1.25])

    def test_custom_costs(self, tiny_frame: pd.DataFrame) -> None:
        """Arms missing from a custom table cost nothing."""
        y = encode_responses(tiny_frame, {TreatmentArm.NEIGHBORS: 3.0})
        np.testing.assert_allclose(y[:, 1], [0.0, 0.0, 3.0, 0.0])


# =============================================================================
# EXPLANATORY ENCODING TESTS
# =============================================================================


class TestExplanatoryEncoding:
    """Tests for the explanatory matrix."""

    def test_age_from_yob(self, tiny_frame: pd.DataFrame) -> None:
        """Age is derived from year of birth."""
        x, names = encode_explanatory(tiny_frame, ["age", "sex"], reference_year=2006)
        assert names == ["age", "sex"]
        np.testing.assert_allclose(x[:, 0], [56, 26, 65, 40])

    def test_age_without_yob(self, tiny_frame: pd.DataFrame) -> None:
        """Age cannot be derived without yob."""
        with pytest.raises(DataValidationError, match="yob"):
            encode_explanatory(tiny_frame.drop(columns=["yob"]), ["age"])

    def test_missing_column(self, tiny_frame: pd.DataFrame) -> None:
        """Requested columns must exist."""
        with pytest.raises(DataValidationError, match="missing"):
            encode_explanatory(tiny_frame, ["sex", "p2004"])

    def test_missing_values(self, tiny_frame: pd.DataFrame) -> None:
        """NaN in an explanatory column is rejected."""
        df = tiny_frame.assign(sex=[0, np.nan, 1, 0])
        with pytest.raises(DataValidationError, match="missing values"):
            encode_explanatory(df, ["sex"])


# =============================================================================
# ENCODER TESTS
# =============================================================================


class TestGOTVEncoder:
    """Tests for GOTVEncoder and EncodedDataset."""

    def test_encode_shapes(self, frame: pd.DataFrame) -> None:
        """x, y and t align and carry names."""
        data = GOTVEncoder().encode(frame)
        n = len(frame)
        assert data.x.shape == (n, len(DEFAULT_EXPLANATORY))
        assert data.y.shape == (n, 2)
        assert data.t.shape == (n, 4)
        assert data.feature_names == DEFAULT_EXPLANATORY
        assert data.response_names == ["voted", "cost"]
        assert data.treatment_names[0] == "Control"
        assert data.n_treatments == 5
        assert len(data) == n

    def test_custom_columns(self, frame: pd.DataFrame) -> None:
        """The explanatory set is configurable."""
        data = GOTVEncoder(EncodingConfig(explanatory_columns=["age", "p2004"])).encode(frame)
        assert data.x.shape[1] == 2

    def test_too_few_rows(self, tiny_frame: pd.DataFrame) -> None:
        """Very small frames are rejected."""
        with pytest.raises(InsufficientDataError) as exc_info:
            GOTVEncoder(EncodingConfig(explanatory_columns=["sex"])).encode(tiny_frame)
        assert exc_info.value.actual == 4

    def test_split_sizes(self, frame: pd.DataFrame) -> None:
        """Train and test partition the rows."""
        data = GOTVEncoder().encode(frame)
        train, test = data.split(test_size=0.25, seed=0)
        assert len(train) + len(test) == len(data)
        assert len(test) == pytest.approx(0.25 * len(data), abs=1)

    def test_split_is_stratified(self, frame: pd.DataFrame) -> None:
        """Arm shares are preserved on both sides of the split."""
        data = GOTVEncoder().encode(frame)
        train, test = data.split(test_size=0.3, seed=0)
        full = np.bincount(treatment_index(data.t), minlength=5) / len(data)
        held = np.bincount(treatment_index(test.t), minlength=5) / len(test)
        np.testing.assert_allclose(held, full, atol=0.02)

    def test_split_invalid_size(self, frame: pd.DataFrame) -> None:
        """test_size must lie strictly between 0 and 1."""
        data = GOTVEncoder().encode(frame)
        with pytest.raises(ValueError):
            data.split(test_size=1.0)
