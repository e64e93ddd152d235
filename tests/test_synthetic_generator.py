"""
Tests for the synthetic GOTV generator.
"""

import pandas as pd
import pytest

from gotv_uplift.data.synthetic_generator import (
    SyntheticGOTVGenerator,
    dataset_statistics,
    generate_small_dataset,
)


class TestSyntheticGOTVGenerator:
    """Tests for SyntheticGOTVGenerator."""

    def test_deterministic(self) -> None:
        """The same seed gives the same frame."""
        a = SyntheticGOTVGenerator(seed=3).generate(300)
        b = SyntheticGOTVGenerator(seed=3).generate(300)
        pd.testing.assert_frame_equal(a, b)

    def test_different_seeds(self) -> None:
        """Different seeds give different frames."""
        a = SyntheticGOTVGenerator(seed=3).generate(300)
        b = SyntheticGOTVGenerator(seed=4).generate(300)
        assert not a.equals(b)

    def test_raw_labels(self) -> None:
        """Raw output mimics the public file's labels."""
        frame = SyntheticGOTVGenerator(seed=1).generate(200)
        assert frame["treatment"].str.startswith(" ").all()
        assert set(frame["voted"]) <= {"Yes", "No"}
        assert set(frame["sex"]) <= {"male", "female"}

    def test_encoded_labels(self) -> None:
        """raw_labels=False emits canonical labels and integers."""
        frame = SyntheticGOTVGenerator(seed=1).generate(200, raw_labels=False)
        assert set(frame["treatment"]) <= {"Control", "Civic Duty", "Hawthorne", "Self", "Neighbors"}
        assert set(frame["voted"]) <= {0, 1}

    def test_household_assignment(self) -> None:
        """Every member of a household gets the same mailer."""
        frame = SyntheticGOTVGenerator(seed=2).generate(500)
        assert (frame.groupby("hh_id")["treatment"].nunique() == 1).all()
        sizes = frame.groupby("hh_id").size()
        assert (frame.groupby("hh_id")["hh_size"].first() == sizes).all()

    def test_invalid_household_count(self) -> None:
        """A non-positive household count is rejected."""
        with pytest.raises(ValueError):
            SyntheticGOTVGenerator().generate(0)

    def test_neighbors_raise_turnout(self) -> None:
        """The strongest mailer lifts turnout over control."""
        frame = SyntheticGOTVGenerator(seed=11).generate(20000, raw_labels=False)
        rates = frame.groupby("treatment")["voted"].mean()
        assert rates["Neighbors"] > rates["Control"]


class TestGenerateSmallDataset:
    """Tests for the convenience helpers."""

    def test_normalized_by_default(self) -> None:
        """The small dataset is ready for encoding."""
        frame = generate_small_dataset(seed=5, n_households=100)
        assert frame["voted"].isin([0, 1]).all()
        assert not frame["treatment"].str.startswith(" ").any()

    def test_raw(self) -> None:
        """normalize=False keeps raw labels."""
        frame = generate_small_dataset(seed=5, n_households=100, normalize=False)
        assert frame["treatment"].str.startswith(" ").all()

    def test_dataset_statistics(self) -> None:
        """Statistics count households and arm shares."""
        frame = generate_small_dataset(seed=5, n_households=100)
        stats = dataset_statistics(frame)
        assert stats.n_households == 100
        assert stats.n_rows == len(frame)
        assert sum(stats.arm_shares.values()) == pytest.approx(1.0)
        assert 0.0 <= stats.turnout <= 1.0
