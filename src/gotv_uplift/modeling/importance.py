"""
Module: importance

Purpose: Permutation variable importance for uplift policies.

Shuffling one explanatory variable breaks its link to the proposed
treatment. Two metrics measure how much the policy relied on it:

- decision_change: share of voters whose proposed arm changes
- erupt_drop: fall in the weighted-objective ERUPT (needs observed y and t)
"""

import logging
from typing import Literal

import numpy as np

from gotv_uplift.data.schemas import VariableImportance
from gotv_uplift.exceptions import DataValidationError
from gotv_uplift.features.encoding import treatment_matrix
from gotv_uplift.modeling.erupt import erupt, inverse_propensity_weights
from gotv_uplift.modeling.uplift_model import UpliftModel, select_treatments

logger = logging.getLogger(__name__)

ImportanceMetric = Literal["decision_change", "erupt_drop"]


def permutation_importance(
    model: UpliftModel,
    x: np.ndarray,
    objective_weights: np.ndarray | list[float],
    feature_names: list[str],
    *,
    n_repeats: int = 5,
    seed: int = 42,
    metric: ImportanceMetric = "decision_change",
    y: np.ndarray | None = None,
    t: np.ndarray | None = None,
) -> list[VariableImportance]:
    """
    Permutation importance of each explanatory variable.

    Args:
        model: Fitted uplift model
        x: Explanatory variables (n, p)
        objective_weights: Response weights defining the policy (r,)
        feature_names: Names of the columns of ``x``
        n_repeats: Shuffles per variable
        seed: Random seed
        metric: "decision_change" or "erupt_drop"
        y: Observed responses, required for "erupt_drop"
        t: Received treatments, required for "erupt_drop"

    Returns:
        VariableImportance per variable, most important first
    """
    x = np.asarray(x, dtype=float)
    weights = np.asarray(objective_weights, dtype=float).reshape(-1)
    if x.shape[1] != len(feature_names):
        raise DataValidationError(
            "feature_names must match the columns of x",
            field="feature_names",
            context={"n_columns": x.shape[1], "n_names": len(feature_names)},
        )
    if n_repeats < 1:
        raise ValueError("n_repeats must be at least 1")
    if metric == "erupt_drop" and (y is None or t is None):
        raise ValueError("erupt_drop requires observed y and t")
    if not feature_names:
        logger.info("No explanatory variables, skipping permutation importance")
        return []

    rng = np.random.default_rng(seed)
    n_arms = model.n_treatments or 0
    baseline = select_treatments(model.predict_responses(x), weights)

    ipw: np.ndarray | None = None
    baseline_value = 0.0
    if metric == "erupt_drop":
        ipw = inverse_propensity_weights(t)
        baseline_value = float(erupt(y, t, treatment_matrix(baseline, n_arms), ipw).mean @ weights)

    results: list[VariableImportance] = []
    for j, name in enumerate(feature_names):
        scores = []
        for _ in range(n_repeats):
            x_perm = x.copy()
            x_perm[:, j] = rng.permutation(x_perm[:, j])
            permuted = select_treatments(model.predict_responses(x_perm), weights)

            if metric == "decision_change":
                scores.append(float(np.mean(permuted != baseline)))
            else:
                value = erupt(y, t, treatment_matrix(permuted, n_arms), ipw).mean @ weights
                scores.append(baseline_value - float(value))

        results.append(
            VariableImportance(
                variable=name,
                importance_mean=float(np.mean(scores)),
                importance_std=float(np.std(scores)),
                metric=metric,
            )
        )

    results.sort(key=lambda r: r.importance_mean, reverse=True)
    logger.info(
        f"Permutation importance ({metric}, {n_repeats} repeats): "
        f"top variable {results[0].variable} = {results[0].importance_mean:.4f}"
    )
    return results


def importance_to_dict(importances: list[VariableImportance]) -> dict[str, float]:
    """Map variable name to mean importance."""
    return {imp.variable: imp.importance_mean for imp in importances}
