"""
Module: uplift_model

Purpose: Multi-treatment, multi-response uplift model for the GOTV report.

A single multi-output neural network learns E[y | x, t] with the one-hot
treatment appended to the explanatory variables. Counterfactual responses
are read off by scoring every voter under every arm; the proposed
treatment is the arm maximising a linear objective over the responses.

Fitting is delegated to scikit-learn's MLPRegressor with a grid search over
its hyperparameters.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import joblib
import numpy as np
from sklearn.metrics import mean_squared_error, r2_score
from sklearn.model_selection import GridSearchCV, KFold, ParameterGrid
from sklearn.neural_network import MLPRegressor
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from gotv_uplift.features.encoding import treatment_matrix
from gotv_uplift.exceptions import DataValidationError, ModelNotFittedError

logger = logging.getLogger(__name__)


@dataclass
class ModelConfig:
    """Configuration for uplift model fitting."""

    # Grid searched by GridSearchCV; keys address the "mlp" pipeline step
    param_grid: dict[str, list[Any]] = field(
        default_factory=lambda: {
            "mlp__hidden_layer_sizes": [(8,), (16, 8)],
            "mlp__alpha": [1e-4, 1e-2],
        }
    )

    # Cross-validation folds
    cv: int = 3

    max_iter: int = 300
    early_stopping: bool = True
    random_state: int = 42
    n_jobs: int | None = None


@dataclass
class FitResult:
    """Results from model fitting."""

    best_params: dict[str, Any]
    cv_mse: float
    final_metrics: dict[str, float]
    training_time: float
    n_samples: int


def select_treatments(responses: np.ndarray, objective_weights: np.ndarray) -> np.ndarray:
    """
    Pick the arm maximising ``responses @ objective_weights`` per voter.

    Args:
        responses: Counterfactual responses (n, k, r)
        objective_weights: Weight per response (r,)

    Returns:
        Arm index per voter (0 is control); ties go to the lower index
    """
    weights = np.asarray(objective_weights, dtype=float).reshape(-1)
    if responses.ndim != 3 or responses.shape[2] != weights.shape[0]:
        raise DataValidationError(
            "Objective weights do not match the number of responses",
            field="objective_weights",
            value=weights.tolist(),
            context={"responses_shape": responses.shape},
        )
    return np.argmax(responses @ weights, axis=1)


class UpliftModel:
    """Multi-response uplift model.

    Example:
        >>> model = UpliftModel(ModelConfig(cv=3))
        >>> result = model.fit(data.x, data.y, data.t)
        >>> optimal_t = model.predict_optimal_treatments(data.x, [20.0, -1.0])
    """

    def __init__(self, config: ModelConfig | None = None) -> None:
        self.config = config or ModelConfig()
        self._estimator: Pipeline | None = None
        self._y_scaler: StandardScaler | None = None
        self.n_features: int | None = None
        self.n_treatments: int | None = None
        self.n_responses: int | None = None
        self.fit_result: FitResult | None = None
        self.metadata: dict[str, Any] = {}

    @property
    def is_fitted(self) -> bool:
        return (
            self._estimator is not None
            and self._y_scaler is not None
            and self.n_treatments is not None
        )

    def _build_search(self) -> GridSearchCV:
        pipeline = Pipeline(
            [
                ("scaler", StandardScaler()),
                (
                    "mlp",
                    MLPRegressor(
                        max_iter=self.config.max_iter,
                        early_stopping=self.config.early_stopping,
                        random_state=self.config.random_state,
                    ),
                ),
            ]
        )
        folds = KFold(
            n_splits=self.config.cv,
            shuffle=True,
            random_state=self.config.random_state,
        )
        return GridSearchCV(
            pipeline,
            param_grid=self.config.param_grid,
            cv=folds,
            scoring="neg_mean_squared_error",
            n_jobs=self.config.n_jobs,
            refit=True,
        )

    @staticmethod
    def _validate(x: np.ndarray, y: np.ndarray, t: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        t = np.asarray(t, dtype=float)
        if y.ndim == 1:
            y = y.reshape(-1, 1)
        if x.ndim != 2 or t.ndim != 2:
            raise DataValidationError("x and t must be 2-D arrays", field="shape")
        if not (x.shape[0] == y.shape[0] == t.shape[0]):
            raise DataValidationError(
                "x, y and t must have the same number of rows",
                field="shape",
                context={"x": x.shape, "y": y.shape, "t": t.shape},
            )
        if t.shape[1] < 1:
            raise DataValidationError("At least one non-control arm is required", field="t")
        return x, y, t

    def fit(
        self,
        x: np.ndarray,
        y: np.ndarray,
        t: np.ndarray,
        response_names: list[str] | None = None,
    ) -> FitResult:
        """
        Fit the uplift model with grid-searched hyperparameters.

        Args:
            x: Explanatory variables (n, p)
            y: Responses (n, r)
            t: One-hot treatments without control (n, k-1)
            response_names: Labels for the per-response metrics

        Returns:
            FitResult with chosen parameters and metrics
        """
        start_time = time.time()
        x, y, t = self._validate(x, y, t)

        self._y_scaler = StandardScaler().fit(y)
        y_scaled = self._y_scaler.transform(y)
        z = np.hstack([x, t])

        search = self._build_search()
        n_candidates = len(ParameterGrid(self.config.param_grid))
        logger.info(
            f"Grid searching {n_candidates} candidate(s) "
            f"with {self.config.cv}-fold CV on {z.shape[0]:,} rows"
        )
        search.fit(z, y_scaled if y_scaled.shape[1] > 1 else y_scaled.ravel())
        logger.info(f"Best parameters: {search.best_params_}, CV MSE: {-search.best_score_:.4f}")

        self._estimator = search.best_estimator_
        self.n_features = x.shape[1]
        self.n_treatments = t.shape[1] + 1
        self.n_responses = y.shape[1]

        y_pred = self._predict_raw(z)
        final_metrics: dict[str, float] = {}
        names = response_names or [str(j) for j in range(y.shape[1])]
        for j, name in enumerate(names):
            final_metrics[f"mse_{name}"] = float(mean_squared_error(y[:, j], y_pred[:, j]))
            final_metrics[f"r2_{name}"] = float(r2_score(y[:, j], y_pred[:, j]))

        training_time = time.time() - start_time
        logger.info(f"Fitting completed in {training_time:.2f}s")

        self.fit_result = FitResult(
            best_params=dict(search.best_params_),
            cv_mse=float(-search.best_score_),
            final_metrics=final_metrics,
            training_time=training_time,
            n_samples=x.shape[0],
        )
        self.metadata = {
            "version": datetime.now().strftime("v%Y%m%d_%H%M%S"),
            "trained_at": datetime.now().isoformat(),
        }
        return self.fit_result

    def _predict_raw(self, z: np.ndarray) -> np.ndarray:
        self._check_fitted("predict")
        pred = self._estimator.predict(z)
        if pred.ndim == 1:
            pred = pred.reshape(-1, 1)
        return self._y_scaler.inverse_transform(pred)

    def _check_fitted(self, operation: str) -> None:
        if not self.is_fitted:
            raise ModelNotFittedError(operation=operation)

    def predict_responses(self, x: np.ndarray) -> np.ndarray:
        """
        Predict every voter's responses under every arm.

        Args:
            x: Explanatory variables (n, p)

        Returns:
            Array (n, k, r); index 0 along the arm axis is control
        """
        self._check_fitted("predict_responses")
        x = np.asarray(x, dtype=float)
        if x.ndim != 2 or x.shape[1] != self.n_features:
            raise DataValidationError(
                f"Expected x with {self.n_features} columns",
                field="x",
                value=x.shape,
            )

        n = x.shape[0]
        out = np.empty((n, self.n_treatments, self.n_responses or 1))
        for arm in range(self.n_treatments):
            t_arm = treatment_matrix(np.full(n, arm), self.n_treatments)
            out[:, arm, :] = self._predict_raw(np.hstack([x, t_arm]))
        return out

    def predict_uplift(self, x: np.ndarray) -> np.ndarray:
        """Responses relative to control, shape (n, k, r)."""
        responses = self.predict_responses(x)
        return responses - responses[:, :1, :]

    def predict_optimal_index(self, x: np.ndarray, objective_weights: Any) -> np.ndarray:
        """Arm index maximising the weighted objective per voter."""
        return select_treatments(self.predict_responses(x), np.asarray(objective_weights))

    def predict_optimal_treatments(self, x: np.ndarray, objective_weights: Any) -> np.ndarray:
        """One-hot (control-dropped) proposed treatments, shape (n, k-1)."""
        self._check_fitted("predict_optimal_treatments")
        return treatment_matrix(self.predict_optimal_index(x, objective_weights), self.n_treatments)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self, model_path: str | Path) -> None:
        """Save the fitted model to disk (.joblib)."""
        self._check_fitted("save")
        model_path = Path(model_path)
        model_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "estimator": self._estimator,
            "y_scaler": self._y_scaler,
            "metadata": {
                **self.metadata,
                "n_features": self.n_features,
                "n_treatments": self.n_treatments,
                "n_responses": self.n_responses,
                "best_params": self.fit_result.best_params if self.fit_result else {},
                "cv_mse": self.fit_result.cv_mse if self.fit_result else None,
            },
            "config": {
                "param_grid": self.config.param_grid,
                "cv": self.config.cv,
                "max_iter": self.config.max_iter,
                "early_stopping": self.config.early_stopping,
                "random_state": self.config.random_state,
                "n_jobs": self.config.n_jobs,
            },
        }
        logger.info(f"Saving uplift model to {model_path}")
        joblib.dump(data, model_path)

    @classmethod
    def load(cls, model_path: str | Path) -> "UpliftModel":
        """
        Load a fitted model from disk.

        Raises:
            FileNotFoundError: If model file doesn't exist
            ValueError: If model file is invalid
        """
        model_path = Path(model_path)
        if not model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        logger.info(f"Loading uplift model from {model_path}")
        try:
            data = joblib.load(model_path)
        except Exception as e:
            raise ValueError(f"Failed to load model: {e}") from e

        for required in ("estimator", "y_scaler", "metadata", "config"):
            if required not in data:
                raise ValueError(f"Invalid model file: missing '{required}'")

        model = cls(ModelConfig(**data["config"]))
        meta = data["metadata"]
        model._estimator = data["estimator"]
        model._y_scaler = data["y_scaler"]
        model.n_features = meta["n_features"]
        model.n_treatments = meta["n_treatments"]
        model.n_responses = meta["n_responses"]
        model.metadata = {k: meta[k] for k in ("version", "trained_at") if k in meta}
        return model
