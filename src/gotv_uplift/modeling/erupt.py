"""
Module: erupt

Purpose: Expected Response Under Proposed Treatments (ERUPT) and tradeoff curves.

ERUPT estimates what the mean response would have been had every voter
received the model's proposed treatment. In a randomised experiment it is
the inverse-propensity weighted mean response over the voters whose
received treatment happens to equal the proposed one.

Sweeping the objective weights (the value placed on one vote against one
unit of mailing cost) traces the turnout/cost tradeoff curve.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from gotv_uplift.data.schemas import TradeoffPoint
from gotv_uplift.exceptions import DataValidationError, InsufficientDataError
from gotv_uplift.features.encoding import treatment_index, treatment_matrix
from gotv_uplift.modeling.uplift_model import UpliftModel, select_treatments

logger = logging.getLogger(__name__)


@dataclass
class ERUPTResult:
    """Weighted mean response under a proposed policy."""

    mean: np.ndarray  # (r,)
    se: np.ndarray  # (r,)
    n_matched: int


def inverse_propensity_weights(t: np.ndarray) -> np.ndarray:
    """Weight each voter by 1 / empirical share of the arm they received."""
    idx = treatment_index(t)
    counts = np.bincount(idx)
    return len(idx) / counts[idx]


def erupt(
    y: np.ndarray,
    t: np.ndarray,
    optimal_t: np.ndarray,
    weights: np.ndarray | None = None,
) -> ERUPTResult:
    """
    Expected response under proposed treatments.

    Args:
        y: Observed responses (n, r) or (n,)
        t: Received treatments, one-hot without control (n, k-1)
        optimal_t: Proposed treatments, same encoding as ``t``
        weights: Observation weights; inverse propensity when None

    Returns:
        ERUPTResult with per-response mean and standard error

    Raises:
        InsufficientDataError: If no voter received the proposed treatment
    """
    y = np.asarray(y, dtype=float)
    if y.ndim == 1:
        y = y.reshape(-1, 1)
    t = np.asarray(t)
    optimal_t = np.asarray(optimal_t)
    if t.shape != optimal_t.shape or t.shape[0] != y.shape[0]:
        raise DataValidationError(
            "y, t and optimal_t must align",
            field="shape",
            context={"y": y.shape, "t": t.shape, "optimal_t": optimal_t.shape},
        )

    if weights is None:
        weights = inverse_propensity_weights(t)
    weights = np.asarray(weights, dtype=float)

    matched = treatment_index(t) == treatment_index(optimal_t)
    n_matched = int(matched.sum())
    if n_matched == 0:
        raise InsufficientDataError(
            "No observation received its proposed treatment",
            required=1,
            actual=0,
            data_type="matched observations",
        )

    w = weights[matched]
    y_m = y[matched]
    w_sum = w.sum()
    mean = (y_m * w[:, None]).sum(axis=0) / w_sum

    # Standard error using the Kish effective sample size
    var = (w[:, None] * (y_m - mean) ** 2).sum(axis=0) / w_sum
    n_eff = w_sum**2 / (w**2).sum()
    se = np.sqrt(var / n_eff)

    return ERUPTResult(mean=mean, se=se, n_matched=n_matched)


def build_objective_weights(
    vote_values: list[float] | np.ndarray,
    cost_weight: float = -1.0,
) -> np.ndarray:
    """Rows of (value of a vote, weight on cost) for the tradeoff sweep."""
    values = np.asarray(vote_values, dtype=float).reshape(-1)
    if values.size == 0:
        raise ValueError("vote_values must not be empty")
    return np.column_stack([values, np.full(values.shape, cost_weight)])


def tradeoff_curve(
    model: UpliftModel,
    x: np.ndarray,
    y: np.ndarray,
    t: np.ndarray,
    objective_weights: np.ndarray,
    *,
    response_names: list[str],
    treatment_names: list[str],
    seed: int = 42,
) -> list[TradeoffPoint]:
    """
    Trace ERUPT across a sweep of objective weights.

    The random baseline shuffles the proposed treatments across voters,
    keeping the treatment mix but removing any targeting.

    Args:
        model: Fitted uplift model
        x, y, t: Held-out evaluation arrays
        objective_weights: One row of response weights per curve point
        response_names: Names of the response columns
        treatment_names: Arm names, control first
        seed: Random seed for the baseline shuffle

    Returns:
        One TradeoffPoint per row of ``objective_weights``
    """
    rng = np.random.default_rng(seed)
    objective_weights = np.atleast_2d(np.asarray(objective_weights, dtype=float))
    responses = model.predict_responses(x)
    ipw = inverse_propensity_weights(t)
    n_arms = len(treatment_names)

    points: list[TradeoffPoint] = []
    for row in objective_weights:
        opt_idx = select_treatments(responses, row)
        opt_t = treatment_matrix(opt_idx, n_arms)
        model_result = erupt(y, t, opt_t, ipw)

        random_t = treatment_matrix(rng.permutation(opt_idx), n_arms)
        random_result = erupt(y, t, random_t, ipw)

        shares = np.bincount(opt_idx, minlength=n_arms) / len(opt_idx)

        points.append(
            TradeoffPoint(
                objective_weights=tuple(float(w) for w in row),
                model_erupt=dict(zip(response_names, model_result.mean.tolist())),
                model_erupt_se=dict(zip(response_names, model_result.se.tolist())),
                random_erupt=dict(zip(response_names, random_result.mean.tolist())),
                treatment_shares=dict(zip(treatment_names, shares.tolist())),
                n_matched=model_result.n_matched,
            )
        )
        logger.debug(f"Weights {row.tolist()}: ERUPT {model_result.mean.round(4).tolist()}")

    logger.info(f"Computed {len(points)} tradeoff points on {len(x):,} held-out voters")
    return points


def tradeoff_frame(points: list[TradeoffPoint]) -> pd.DataFrame:
    """
    Long-format frame of a tradeoff curve for plotting.

    Columns: vote_value, policy ("model" or "random"), response, value, se
    """
    rows = []
    for p in points:
        for response, value in p.model_erupt.items():
            rows.append(
                {
                    "vote_value": p.vote_value,
                    "policy": "model",
                    "response": response,
                    "value": value,
                    "se": p.model_erupt_se.get(response, np.nan),
                }
            )
        for response, value in p.random_erupt.items():
            rows.append(
                {
                    "vote_value": p.vote_value,
                    "policy": "random",
                    "response": response,
                    "value": value,
                    "se": np.nan,
                }
            )
    return pd.DataFrame(rows, columns=["vote_value", "policy", "response", "value", "se"])


def treatment_share_frame(points: list[TradeoffPoint]) -> pd.DataFrame:
    """Wide frame of arm shares indexed by vote value."""
    frame = pd.DataFrame(
        [p.treatment_shares for p in points],
        index=pd.Index([p.vote_value for p in points], name="vote_value"),
    )
    return frame.sort_index()
