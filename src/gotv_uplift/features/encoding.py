"""
Module: encoding

Purpose: Turn a normalised GOTV frame into the numeric arrays the uplift model expects.

Key Functions:
- encode_treatments: One-hot treatment matrix with the control arm dropped
- encode_responses: Turnout and mailer-cost response matrix
- encode_explanatory: Demographic and voting-history feature matrix
- GOTVEncoder: Bundles the three into an EncodedDataset

Architecture Notes:
- Treatment columns follow TreatmentArm order; an all-zero row is control
- Responses are ordered (voted, cost) so objective weights read (vote value, cost weight)
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from gotv_uplift.data.loader import RESPONSE_COL, TREATMENT_COL
from gotv_uplift.data.schemas import DEFAULT_TREATMENT_COSTS, TreatmentArm
from gotv_uplift.exceptions import DataValidationError, InsufficientDataError

logger = logging.getLogger(__name__)

DEFAULT_EXPLANATORY = [
    "sex",
    "age",
    "g2000",
    "g2002",
    "p2000",
    "p2002",
    "p2004",
    "hh_size",
]

RESPONSE_NAMES = ("voted", "cost")


@dataclass
class EncodingConfig:
    """Configuration for GOTV encoding."""

    explanatory_columns: list[str] = field(default_factory=lambda: list(DEFAULT_EXPLANATORY))

    # yob is converted to age at the 2006 primary
    reference_year: int = 2006

    treatment_costs: dict[TreatmentArm, float] = field(
        default_factory=lambda: dict(DEFAULT_TREATMENT_COSTS)
    )


@dataclass
class EncodedDataset:
    """Arrays ready for model fitting.

    x: explanatory variables (n, p)
    y: responses (n, r), columns named by ``response_names``
    t: one-hot treatments without control (n, k-1)
    """

    x: np.ndarray
    y: np.ndarray
    t: np.ndarray
    feature_names: list[str]
    response_names: list[str]
    treatment_names: list[str]

    def __len__(self) -> int:
        return self.x.shape[0]

    @property
    def n_treatments(self) -> int:
        """Number of arms including control."""
        return self.t.shape[1] + 1

    def subset(self, idx: np.ndarray) -> "EncodedDataset":
        return EncodedDataset(
            x=self.x[idx],
            y=self.y[idx],
            t=self.t[idx],
            feature_names=list(self.feature_names),
            response_names=list(self.response_names),
            treatment_names=list(self.treatment_names),
        )

    def split(
        self,
        test_size: float = 0.3,
        seed: int = 42,
    ) -> tuple["EncodedDataset", "EncodedDataset"]:
        """Train/test split stratified by treatment arm."""
        if not 0.0 < test_size < 1.0:
            raise ValueError(f"test_size must be in (0, 1), got {test_size}")

        strata = treatment_index(self.t)
        idx = np.arange(len(self))
        train_idx, test_idx = train_test_split(
            idx,
            test_size=test_size,
            random_state=seed,
            stratify=strata,
        )
        return self.subset(np.sort(train_idx)), self.subset(np.sort(test_idx))


# =============================================================================
# ENCODERS
# =============================================================================


def treatment_index(t: np.ndarray) -> np.ndarray:
    """Convert a one-hot (control-dropped) matrix back to arm indices."""
    t = np.asarray(t)
    if t.ndim != 2:
        raise DataValidationError("Treatment matrix must be 2-D", field="t", value=t.shape)
    idx = np.zeros(t.shape[0], dtype=int)
    treated = t.sum(axis=1) > 0
    idx[treated] = t[treated].argmax(axis=1) + 1
    return idx


def treatment_matrix(indices: np.ndarray, n_treatments: int) -> np.ndarray:
    """Inverse of ``treatment_index``."""
    indices = np.asarray(indices, dtype=int)
    out = np.zeros((len(indices), n_treatments - 1))
    treated = indices > 0
    out[np.flatnonzero(treated), indices[treated] - 1] = 1.0
    return out


def encode_treatments(series: pd.Series) -> np.ndarray:
    """
    One-hot encode treatment labels, dropping the control column.

    Args:
        series: Normalised treatment labels

    Returns:
        Array of shape (n, 4)
    """
    arms = TreatmentArm.ordered()
    position = {arm.value: i for i, arm in enumerate(arms)}
    unknown = set(series.unique()) - set(position)
    if unknown:
        raise DataValidationError(
            f"Unknown treatment labels: {sorted(map(str, unknown))}",
            field=TREATMENT_COL,
        )
    indices = series.map(position).to_numpy()
    return treatment_matrix(indices, len(arms))


def encode_responses(
    df: pd.DataFrame,
    costs: dict[TreatmentArm, float] | None = None,
) -> np.ndarray:
    """
    Build the (voted, cost) response matrix.

    Cost is the cost of the mailer each voter actually received.
    """
    costs = costs or DEFAULT_TREATMENT_COSTS
    by_label = {arm.value: float(costs.get(arm, 0.0)) for arm in TreatmentArm}
    voted = df[RESPONSE_COL].astype(float).to_numpy()
    cost = df[TREATMENT_COL].map(by_label).astype(float).to_numpy()
    return np.column_stack([voted, cost])


def encode_explanatory(
    df: pd.DataFrame,
    columns: list[str],
    *,
    reference_year: int = 2006,
) -> tuple[np.ndarray, list[str]]:
    """
    Build the explanatory matrix.

    ``age`` is derived from ``yob`` when requested and not already present.
    """
    frame = df
    if "age" in columns and "age" not in df.columns:
        if "yob" not in df.columns:
            raise DataValidationError("Cannot derive age without 'yob'", field="age")
        frame = df.assign(age=reference_year - df["yob"])

    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise DataValidationError(
            f"Explanatory columns missing from data: {missing}",
            field="explanatory_columns",
        )

    x = frame[columns].astype(float).to_numpy()
    if np.isnan(x).any():
        raise DataValidationError(
            "Explanatory variables contain missing values",
            field="explanatory_columns",
            context={"n_missing": int(np.isnan(x).sum())},
        )
    return x, list(columns)


class GOTVEncoder:
    """Encode a normalised GOTV frame into an EncodedDataset.

    Example:
        >>> encoder = GOTVEncoder(EncodingConfig())
        >>> data = encoder.encode(frame)
        >>> train, test = data.split(test_size=0.3)
    """

    MIN_ROWS = 10

    def __init__(self, config: EncodingConfig | None = None) -> None:
        self.config = config or EncodingConfig()

    def encode(self, df: pd.DataFrame) -> EncodedDataset:
        if len(df) < self.MIN_ROWS:
            raise InsufficientDataError(
                f"Need at least {self.MIN_ROWS} rows to encode",
                required=self.MIN_ROWS,
                actual=len(df),
                data_type="voters",
            )

        t = encode_treatments(df[TREATMENT_COL])
        y = encode_responses(df, self.config.treatment_costs)
        x, names = encode_explanatory(
            df,
            self.config.explanatory_columns,
            reference_year=self.config.reference_year,
        )

        logger.info(
            f"Encoded {len(df):,} voters: {x.shape[1]} explanatory variables, "
            f"{t.shape[1] + 1} arms, {y.shape[1]} responses"
        )

        return EncodedDataset(
            x=x,
            y=y,
            t=t,
            feature_names=names,
            response_names=list(RESPONSE_NAMES),
            treatment_names=[arm.value for arm in TreatmentArm.ordered()],
        )
