"""
Modeling module for the GOTV uplift report.

Contains the uplift model, ERUPT evaluation and permutation importance.
"""

from gotv_uplift.modeling.erupt import (
    ERUPTResult,
    build_objective_weights,
    erupt,
    tradeoff_curve,
)
from gotv_uplift.modeling.importance import permutation_importance
from gotv_uplift.modeling.uplift_model import (
    FitResult,
    ModelConfig,
    UpliftModel,
    select_treatments,
)

__all__ = [
    # Model
    "FitResult",
    "ModelConfig",
    "UpliftModel",
    "select_treatments",
    # Evaluation
    "ERUPTResult",
    "build_objective_weights",
    "erupt",
    "tradeoff_curve",
    # Importance
    "permutation_importance",
]
