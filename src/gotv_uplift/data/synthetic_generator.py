"""
Module: synthetic_generator

Purpose: Generate GOTV-shaped synthetic voter files for testing and demos.

Generates realistic synthetic data with:
- Deterministic generation with seed for reproducibility
- Household-level treatment assignment, as in the field experiment
- Heterogeneous treatment effects (larger for habitual primary voters)
- Raw labels in the public file's format (" Civic Duty", "Yes"/"No")
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from gotv_uplift.data.loader import HISTORY_COLUMNS, normalize_frame
from gotv_uplift.data.schemas import TreatmentArm


# =============================================================================
# CONSTANTS
# =============================================================================

# Share of households per arm (control received roughly five ninths)
ARM_PROBABILITIES: dict[TreatmentArm, float] = {
    TreatmentArm.CONTROL: 5 / 9,
    TreatmentArm.CIVIC_DUTY: 1 / 9,
    TreatmentArm.HAWTHORNE: 1 / 9,
    TreatmentArm.SELF: 1 / 9,
    TreatmentArm.NEIGHBORS: 1 / 9,
}

# Average turnout lift on the logit scale
ARM_EFFECTS: dict[TreatmentArm, float] = {
    TreatmentArm.CONTROL: 0.0,
    TreatmentArm.CIVIC_DUTY: 0.08,
    TreatmentArm.HAWTHORNE: 0.12,
    TreatmentArm.SELF: 0.22,
    TreatmentArm.NEIGHBORS: 0.36,
}

HISTORY_RATES: dict[str, float] = {
    "g2000": 0.84,
    "g2002": 0.81,
    "g2004": 1.0,
    "p2000": 0.25,
    "p2002": 0.39,
    "p2004": 0.40,
}

ELECTION_YEAR = 2006


@dataclass
class GeneratorStats:
    """Summary of a generated frame."""

    n_rows: int
    n_households: int
    turnout: float
    arm_shares: dict[str, float]


class SyntheticGOTVGenerator:
    """
    Generate a synthetic GOTV voter file.

    Each household draws one arm; every member receives the same mailer.
    Turnout follows a logistic model in age, sex and voting history, plus
    an arm effect that grows with the number of past primaries voted in.
    """

    def __init__(self, seed: int = 42) -> None:
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def generate(self, n_households: int = 2000, *, raw_labels: bool = True) -> pd.DataFrame:
        """
        Generate a voter file.

        Args:
            n_households: Number of households to simulate
            raw_labels: Emit the public file's label format instead of encoded values

        Returns:
            DataFrame with one row per registered voter
        """
        if n_households <= 0:
            raise ValueError("n_households must be positive")

        rng = self._rng
        arms = TreatmentArm.ordered()
        probs = np.array([ARM_PROBABILITIES[a] for a in arms])

        hh_sizes = rng.choice([1, 2, 3, 4], size=n_households, p=[0.30, 0.50, 0.15, 0.05])
        hh_arm_idx = rng.choice(len(arms), size=n_households, p=probs / probs.sum())

        hh_id = np.repeat(np.arange(1, n_households + 1), hh_sizes)
        hh_size = np.repeat(hh_sizes, hh_sizes)
        arm_idx = np.repeat(hh_arm_idx, hh_sizes)
        n = len(hh_id)

        yob = rng.normal(1956, 14, size=n).round().clip(1900, 1986).astype(int)
        sex = rng.integers(0, 2, size=n)

        history = {
            col: (rng.random(n) < rate).astype(int) for col, rate in HISTORY_RATES.items()
        }
        primaries = history["p2000"] + history["p2002"] + history["p2004"]
        generals = history["g2000"] + history["g2002"]

        age = ELECTION_YEAR - yob
        logit = (
            -2.3
            + 0.012 * (age - 50)
            + 0.05 * sex
            + 0.55 * primaries
            + 0.30 * generals
            - 0.04 * (hh_size - 2)
        )
        effects = np.array([ARM_EFFECTS[a] for a in arms])[arm_idx]
        logit = logit + effects * (0.5 + 0.5 * primaries)

        voted = (rng.random(n) < 1.0 / (1.0 + np.exp(-logit))).astype(int)

        frame = pd.DataFrame(
            {
                "sex": sex,
                "yob": yob,
                **history,
                "treatment": [arms[i].value for i in arm_idx],
                "voted": voted,
                "hh_id": hh_id,
                "hh_size": hh_size,
            }
        )

        if raw_labels:
            frame["sex"] = np.where(sex == 1, "female", "male")
            frame["voted"] = np.where(voted == 1, "Yes", "No")
            for col in HISTORY_COLUMNS:
                frame[col] = np.where(frame[col] == 1, "yes", "no")
            frame["treatment"] = " " + frame["treatment"]

        return frame


def generate_small_dataset(
    seed: int = 42,
    n_households: int = 1500,
    *,
    normalize: bool = True,
) -> pd.DataFrame:
    """Generate a small voter file, normalised by default."""
    frame = SyntheticGOTVGenerator(seed=seed).generate(n_households)
    return normalize_frame(frame) if normalize else frame


def dataset_statistics(frame: pd.DataFrame) -> GeneratorStats:
    """Quick statistics over a normalised frame."""
    shares = frame["treatment"].value_counts(normalize=True)
    return GeneratorStats(
        n_rows=len(frame),
        n_households=int(frame["hh_id"].nunique()),
        turnout=float(frame["voted"].mean()),
        arm_shares={str(k): float(v) for k, v in shares.items()},
    )
