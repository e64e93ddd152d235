"""
Module: pipeline

Purpose: Main orchestrator for the end-to-end GOTV uplift report.

Key Functions:
- run_pipeline: Execute the complete pipeline from voter file to report
- PipelineConfig: Configuration for pipeline execution
- PipelineResult: Container for pipeline outputs
- write_outputs: Write figures, HTML, JSON and the fitted model to disk

Architecture Notes:
- Orchestrates all pipeline stages, timing each one
- Supports both a real voter file and synthetic data
- A failing stage yields PipelineResult(success=False) rather than raising
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pandas as pd

from gotv_uplift.data.loader import GOTVDataLoader, normalize_frame, summarize_dataset
from gotv_uplift.data.schemas import DatasetSummary, TradeoffPoint, VariableImportance
from gotv_uplift.data.synthetic_generator import generate_small_dataset
from gotv_uplift.exceptions import ConfigurationError, PipelineError
from gotv_uplift.features.encoding import EncodedDataset, EncodingConfig, GOTVEncoder
from gotv_uplift.modeling.erupt import build_objective_weights, tradeoff_curve
from gotv_uplift.modeling.importance import ImportanceMetric, permutation_importance
from gotv_uplift.modeling.uplift_model import FitResult, ModelConfig, UpliftModel
from gotv_uplift.reporting import visuals
from gotv_uplift.reporting.html import render_report_html, save_report_html
from gotv_uplift.reporting.report import (
    UpliftReport,
    export_report_to_json,
    generate_uplift_report,
)

logger = logging.getLogger(__name__)

# Value of one vote, in units of mailer cost, swept by the tradeoff curve
DEFAULT_VOTE_VALUES: list[float] = [0.0, 5.0, 10.0, 15.0, 20.0, 25.0, 30.0, 40.0, 50.0, 75.0, 100.0]


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class PipelineConfig:
    """Configuration for pipeline execution."""

    # Data acquisition (synthetic data is used when data_path is None)
    data_path: Path | None = None
    n_households: int = 3000
    data_seed: int = 42

    # Encoding and model
    encoding: EncodingConfig = field(default_factory=EncodingConfig)
    model: ModelConfig = field(default_factory=ModelConfig)

    # Train/test split
    test_size: float = 0.3
    split_seed: int = 42

    # Tradeoff curves
    vote_values: list[float] = field(default_factory=lambda: list(DEFAULT_VOTE_VALUES))
    cost_weight: float = -1.0

    # Variable importance
    run_importance: bool = True
    importance_vote_value: float = 25.0
    importance_metric: ImportanceMetric = "decision_change"
    n_repeats: int = 5

    # Output options
    generate_report: bool = True
    output_dir: Path | None = None
    verbose: bool = False


@dataclass
class PipelineStageResult:
    """Result from a single pipeline stage."""

    stage_name: str
    success: bool
    duration_ms: float
    metrics: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None


@dataclass
class PipelineResult:
    """Complete pipeline execution result."""

    # Data
    frame: pd.DataFrame | None
    summary: DatasetSummary | None
    train: EncodedDataset | None
    test: EncodedDataset | None

    # Model and evaluation
    model: UpliftModel | None
    fit_result: FitResult | None
    tradeoff: list[TradeoffPoint]
    importances: list[VariableImportance]

    # Report
    report: UpliftReport | None

    # Metadata
    config: PipelineConfig
    stage_results: list[PipelineStageResult] = field(default_factory=list)
    output_files: dict[str, Path] = field(default_factory=dict)
    total_duration_ms: float = 0.0
    success: bool = True
    error_message: str | None = None

    @property
    def best_point(self) -> TradeoffPoint | None:
        """Tradeoff point where targeting beats random assignment by the most."""
        if not self.tradeoff:
            return None
        return max(
            self.tradeoff,
            key=lambda p: p.model_erupt["voted"] - p.random_erupt["voted"],
        )

    def get_summary(self) -> dict[str, Any]:
        """Get summary of pipeline results."""
        return {
            "n_voters": self.summary.n_rows if self.summary else 0,
            "n_train": len(self.train) if self.train else 0,
            "n_test": len(self.test) if self.test else 0,
            "n_tradeoff_points": len(self.tradeoff),
            "n_variables": len(self.importances),
            "total_duration_ms": self.total_duration_ms,
            "success": self.success,
            "stages": [
                {
                    "name": s.stage_name,
                    "success": s.success,
                    "duration_ms": s.duration_ms,
                }
                for s in self.stage_results
            ],
        }


# =============================================================================
# PIPELINE EXECUTION
# =============================================================================


def _time_stage(
    stage_name: str,
    func: Callable[[], Any],
    verbose: bool = False,
) -> tuple[Any, PipelineStageResult]:
    """Execute a stage and time it."""
    if verbose:
        print(f"[Pipeline] Starting: {stage_name}")
    logger.info(f"Stage started: {stage_name}")

    start = time.perf_counter()
    try:
        result = func()
    except Exception as e:
        duration = (time.perf_counter() - start) * 1000
        logger.error(f"Stage failed: {stage_name} after {duration:.1f}ms: {e}")
        if verbose:
            print(f"[Pipeline] Failed: {stage_name} - {e}")
        raise

    duration = (time.perf_counter() - start) * 1000
    stage_result = PipelineStageResult(
        stage_name=stage_name,
        success=True,
        duration_ms=duration,
    )
    logger.info(f"Stage completed: {stage_name} ({duration:.1f}ms)")
    if verbose:
        print(f"[Pipeline] Completed: {stage_name} ({duration:.1f}ms)")

    return result, stage_result


def validate_config(config: PipelineConfig) -> None:
    """
    Check a PipelineConfig before any stage runs.

    Raises:
        ConfigurationError: If a setting is out of range
    """
    if not 0.0 < config.test_size < 1.0:
        raise ConfigurationError(
            f"test_size must be in (0, 1), got {config.test_size}",
            setting="test_size",
        )
    if not config.vote_values:
        raise ConfigurationError("vote_values must not be empty", setting="vote_values")
    if config.n_repeats < 1:
        raise ConfigurationError(
            f"n_repeats must be at least 1, got {config.n_repeats}",
            setting="n_repeats",
        )
    if config.model.cv < 2:
        raise ConfigurationError(
            f"cv must be at least 2, got {config.model.cv}",
            setting="cv",
        )
    if config.data_path is None and config.n_households <= 0:
        raise ConfigurationError(
            f"n_households must be positive, got {config.n_households}",
            setting="n_households",
        )


def _failed_result(
    config: PipelineConfig,
    stage_results: list[PipelineStageResult],
    start_time: float,
    error: Exception,
) -> PipelineResult:
    return PipelineResult(
        frame=None,
        summary=None,
        train=None,
        test=None,
        model=None,
        fit_result=None,
        tradeoff=[],
        importances=[],
        report=None,
        config=config,
        stage_results=stage_results,
        total_duration_ms=(time.perf_counter() - start_time) * 1000,
        success=False,
        error_message=str(error),
    )


def run_pipeline(
    config: PipelineConfig | None = None,
    *,
    data: pd.DataFrame | None = None,
) -> PipelineResult:
    """
    Execute the complete uplift report pipeline.

    Data is taken from, in order of preference:
    1. data: An in-memory voter frame (raw or normalised)
    2. config.data_path: A CSV or parquet voter file
    3. Neither: Synthetic data generated from config

    Args:
        config: Pipeline configuration
        data: Optional voter frame

    Returns:
        PipelineResult with all outputs. On failure ``success`` is False
        and ``error_message`` holds the cause.
    """
    config = config or PipelineConfig()
    start_time = time.perf_counter()
    stage_results: list[PipelineStageResult] = []

    try:
        validate_config(config)

        # Stage 1: Data Acquisition
        def acquire_data() -> pd.DataFrame:
            if data is not None:
                return normalize_frame(data).dropna().reset_index(drop=True)
            if config.data_path is not None:
                return GOTVDataLoader(config.data_path).load().frame
            return generate_small_dataset(seed=config.data_seed, n_households=config.n_households)

        frame, stage = _time_stage("Data Acquisition", acquire_data, config.verbose)
        summary = summarize_dataset(frame)
        stage.metrics = {
            "n_voters": summary.n_rows,
            "n_households": summary.n_households,
            "overall_turnout": summary.overall_turnout,
        }
        stage_results.append(stage)

        # Stage 2: Encoding
        def encode() -> EncodedDataset:
            return GOTVEncoder(config.encoding).encode(frame)

        dataset, stage = _time_stage("Encoding", encode, config.verbose)
        stage.metrics = {
            "n_features": dataset.x.shape[1],
            "n_treatments": dataset.n_treatments,
            "n_responses": dataset.y.shape[1],
        }
        stage_results.append(stage)

        # Stage 3: Train/Test Split
        def split() -> tuple[EncodedDataset, EncodedDataset]:
            return dataset.split(test_size=config.test_size, seed=config.split_seed)

        (train, test), stage = _time_stage("Train/Test Split", split, config.verbose)
        stage.metrics = {"n_train": len(train), "n_test": len(test)}
        stage_results.append(stage)

        # Stage 4: Model Fitting
        model = UpliftModel(config.model)

        def fit() -> FitResult:
            return model.fit(train.x, train.y, train.t, response_names=train.response_names)

        fit_result, stage = _time_stage("Model Fitting", fit, config.verbose)
        stage.metrics = {
            "cv_mse": fit_result.cv_mse,
            "training_time": fit_result.training_time,
            **fit_result.final_metrics,
        }
        stage_results.append(stage)

        # Stage 5: Tradeoff Curves
        def trace_curves() -> list[TradeoffPoint]:
            weights = build_objective_weights(config.vote_values, config.cost_weight)
            return tradeoff_curve(
                model,
                test.x,
                test.y,
                test.t,
                weights,
                response_names=test.response_names,
                treatment_names=test.treatment_names,
                seed=config.split_seed,
            )

        tradeoff, stage = _time_stage("Tradeoff Curves", trace_curves, config.verbose)
        stage.metrics = {"n_points": len(tradeoff)}
        stage_results.append(stage)

        # Stage 6: Variable Importance
        importances: list[VariableImportance] = []
        if config.run_importance:

            def compute_importance() -> list[VariableImportance]:
                weights = build_objective_weights([config.importance_vote_value], config.cost_weight)[0]
                return permutation_importance(
                    model,
                    test.x,
                    weights,
                    test.feature_names,
                    n_repeats=config.n_repeats,
                    seed=config.split_seed,
                    metric=config.importance_metric,
                    y=test.y,
                    t=test.t,
                )

            importances, stage = _time_stage("Variable Importance", compute_importance, config.verbose)
            stage.metrics = {
                "n_variables": len(importances),
                "top_variable": importances[0].variable if importances else None,
            }
            stage_results.append(stage)

        # Stage 7: Report Generation
        report: UpliftReport | None = None
        if config.generate_report:

            def create_report() -> UpliftReport:
                return generate_uplift_report(
                    summary,
                    tradeoff,
                    importances,
                    encoding={
                        "feature_names": train.feature_names,
                        "response_names": train.response_names,
                        "treatment_names": train.treatment_names,
                        "treatment_costs": {
                            arm.value: cost for arm, cost in config.encoding.treatment_costs.items()
                        },
                        "reference_year": config.encoding.reference_year,
                        "n_train": len(train),
                        "n_test": len(test),
                    },
                    model={
                        "best_params": {k: str(v) for k, v in fit_result.best_params.items()},
                        "cv_mse": fit_result.cv_mse,
                        "final_metrics": fit_result.final_metrics,
                        "training_time": fit_result.training_time,
                        "n_samples": fit_result.n_samples,
                        **model.metadata,
                    },
                    metadata={
                        "data_source": str(config.data_path) if config.data_path else (
                            "in-memory" if data is not None else "synthetic"
                        ),
                        "vote_values": list(config.vote_values),
                        "cost_weight": config.cost_weight,
                        "importance_vote_value": config.importance_vote_value,
                    },
                )

            report, stage = _time_stage("Report Generation", create_report, config.verbose)
            stage.metrics = {"report_id": report.report_id}
            stage_results.append(stage)

        result = PipelineResult(
            frame=frame,
            summary=summary,
            train=train,
            test=test,
            model=model,
            fit_result=fit_result,
            tradeoff=tradeoff,
            importances=importances,
            report=report,
            config=config,
            stage_results=stage_results,
        )

        # Stage 8: Output Writing
        if config.output_dir is not None:
            output_files, stage = _time_stage(
                "Output Writing",
                lambda: write_outputs(result, config.output_dir),
                config.verbose,
            )
            stage.metrics = {"n_files": len(output_files)}
            stage_results.append(stage)
            result.output_files = output_files

        result.total_duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Pipeline completed in {result.total_duration_ms:.1f}ms")
        return result

    except Exception as e:
        logger.exception(f"Pipeline failed: {e}")
        return _failed_result(config, stage_results, start_time, e)


# =============================================================================
# OUTPUT WRITING
# =============================================================================


def build_figures(result: PipelineResult) -> dict[str, Any]:
    """Create every report figure for a successful result."""
    if result.summary is None or result.model is None or result.test is None:
        raise PipelineError("Cannot plot an incomplete pipeline result", stage="Output Writing")

    visuals.set_style()
    figures = {
        "turnout_by_treatment": visuals.plot_turnout_by_treatment(result.summary),
        "tradeoff_curve": visuals.plot_tradeoff_curve(result.tradeoff),
        "responses_by_weight": visuals.plot_responses_by_weight(result.tradeoff),
        "treatment_distribution": visuals.plot_treatment_distribution(result.tradeoff),
        "uplift_distribution": visuals.plot_uplift_distribution(
            result.model,
            result.test.x,
            result.test.treatment_names,
        ),
    }
    if result.importances:
        figures["variable_importance"] = visuals.plot_variable_importance(result.importances)
    return figures


def write_outputs(result: PipelineResult, output_dir: str | Path) -> dict[str, Path]:
    """
    Write the report artefacts of a pipeline run.

    Files written: one PNG per figure, report.html, report.json and
    model.joblib.

    Args:
        result: Successful pipeline result
        output_dir: Directory to write into (created if missing)

    Returns:
        Mapping of artefact name to path
    """
    if result.report is None or result.model is None:
        raise PipelineError(
            "Outputs need a generated report and a fitted model",
            stage="Output Writing",
        )

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    paths: dict[str, Path] = {}

    figures = build_figures(result)
    encoded: dict[str, str] = {}
    try:
        for name, fig in figures.items():
            path = output_dir / f"{name}.png"
            visuals.save_figure(fig, str(path))
            encoded[name] = visuals.figure_to_base64(fig)
            paths[name] = path
    finally:
        for fig in figures.values():
            visuals.close_figure(fig)

    paths["html"] = save_report_html(render_report_html(result.report, encoded), output_dir / "report.html")

    json_path = output_dir / "report.json"
    export_report_to_json(result.report, json_path)
    paths["json"] = json_path

    model_path = output_dir / "model.joblib"
    result.model.save(model_path)
    paths["model"] = model_path

    logger.info(f"Wrote {len(paths)} files to {output_dir}")
    return paths


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def quick_report(
    n_households: int = 1500,
    *,
    seed: int = 42,
    output_dir: str | Path | None = None,
    verbose: bool = False,
) -> PipelineResult:
    """
    Run the pipeline on synthetic data with a small model grid.

    Useful for demos and quick exploration.

    Args:
        n_households: Number of synthetic households
        seed: Random seed
        output_dir: Optional directory for report files
        verbose: Print progress

    Returns:
        PipelineResult
    """
    config = PipelineConfig(
        n_households=n_households,
        data_seed=seed,
        split_seed=seed,
        model=ModelConfig(
            param_grid={"mlp__hidden_layer_sizes": [(8,)], "mlp__alpha": [1e-3]},
            cv=2,
            max_iter=200,
            random_state=seed,
        ),
        vote_values=[0.0, 10.0, 25.0, 50.0, 100.0],
        n_repeats=3,
        output_dir=Path(output_dir) if output_dir is not None else None,
        verbose=verbose,
    )
    return run_pipeline(config)


def get_pipeline_metrics(result: PipelineResult) -> dict[str, Any]:
    """
    Extract key metrics from pipeline result.

    Args:
        result: PipelineResult

    Returns:
        Dictionary of metrics
    """
    metrics: dict[str, Any] = {
        "success": result.success,
        "total_duration_ms": result.total_duration_ms,
        "n_voters": result.summary.n_rows if result.summary else 0,
        "n_train": len(result.train) if result.train else 0,
        "n_test": len(result.test) if result.test else 0,
        "n_tradeoff_points": len(result.tradeoff),
    }

    stage_timings = {
        f"stage_{s.stage_name.lower().replace(' ', '_').replace('/', '_')}_ms": s.duration_ms
        for s in result.stage_results
    }
    metrics.update(stage_timings)

    if result.fit_result:
        metrics["cv_mse"] = result.fit_result.cv_mse

    best = result.best_point
    if best is not None:
        metrics["best_vote_value"] = best.vote_value
        metrics["max_turnout_gain_vs_random"] = best.model_erupt["voted"] - best.random_erupt["voted"]

    if result.importances:
        metrics["top_variable"] = result.importances[0].variable

    return metrics


def format_pipeline_summary(result: PipelineResult) -> str:
    """
    Format pipeline result as human-readable summary.

    Args:
        result: PipelineResult

    Returns:
        Formatted summary string
    """
    lines = [
        "=" * 60,
        "GOTV UPLIFT PIPELINE RESULTS",
        "=" * 60,
        "",
        f"Status: {'SUCCESS' if result.success else 'FAILED'}",
        f"Duration: {result.total_duration_ms:.1f}ms",
        "",
    ]

    if result.error_message:
        lines.extend([f"Error: {result.error_message}", ""])

    if result.summary:
        lines.extend([
            "DATA:",
            f"  - Voters: {result.summary.n_rows:,}",
            f"  - Overall turnout: {result.summary.overall_turnout:.1%}",
            f"  - Train / test: {len(result.train) if result.train else 0:,}"
            f" / {len(result.test) if result.test else 0:,}",
            "",
        ])

    if result.fit_result:
        lines.extend([
            "MODEL:",
            f"  - Best parameters: {result.fit_result.best_params}",
            f"  - CV MSE (standardised): {result.fit_result.cv_mse:.4f}",
            "",
        ])

    best = result.best_point
    if best is not None:
        lines.extend([
            "TRADEOFF:",
            f"  - Points: {len(result.tradeoff)}",
            f"  - Best vote value: {best.vote_value:g}",
            f"  - Turnout (model / random): {best.model_erupt['voted']:.2%}"
            f" / {best.random_erupt['voted']:.2%}",
            f"  - Cost per voter: {best.model_erupt['cost']:.3f}",
            "",
        ])

    if result.importances:
        lines.append("VARIABLE IMPORTANCE:")
        for imp in result.importances[:5]:
            lines.append(f"  - {imp.variable}: {imp.importance_mean:.4f}")
        lines.append("")

    lines.append("STAGE TIMINGS:")
    for stage in result.stage_results:
        status = "✓" if stage.success else "✗"
        lines.append(f"  {status} {stage.stage_name}: {stage.duration_ms:.1f}ms")

    lines.extend([
        "",
        "=" * 60,
    ])

    return "\n".join(lines)


def export_results_to_dict(result: PipelineResult) -> dict[str, Any]:
    """
    Export pipeline results to a dictionary for serialization.

    Args:
        result: PipelineResult

    Returns:
        Dictionary suitable for JSON serialization
    """
    return {
        "success": result.success,
        "error_message": result.error_message,
        "duration_ms": result.total_duration_ms,
        "dataset": result.summary.model_dump() if result.summary else None,
        "model": {
            "best_params": {k: str(v) for k, v in result.fit_result.best_params.items()},
            "cv_mse": result.fit_result.cv_mse,
            "final_metrics": result.fit_result.final_metrics,
        } if result.fit_result else None,
        "tradeoff": [p.model_dump() for p in result.tradeoff],
        "importance": [i.model_dump() for i in result.importances],
        "output_files": {k: str(v) for k, v in result.output_files.items()},
        "stages": [
            {
                "name": s.stage_name,
                "success": s.success,
                "duration_ms": s.duration_ms,
                "metrics": s.metrics,
            }
            for s in result.stage_results
        ],
    }
