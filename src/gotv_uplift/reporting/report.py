"""
Module: report

Purpose: Assemble and export the uplift analysis report.

Key Functions:
- generate_uplift_report: Create the report container from pipeline outputs
- export_report_to_json: Export report as JSON
- generate_text_summary: Plain-text digest for logs and terminals

Architecture Notes:
- Dataclass containers, serialised with dataclasses.asdict
- NumpyEncoder handles numpy scalars and arrays in the JSON output
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np

from gotv_uplift.data.schemas import DatasetSummary, TradeoffPoint, VariableImportance
from gotv_uplift.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)


# =============================================================================
# REPORT DATA CLASSES
# =============================================================================


@dataclass
class TradeoffRow:
    """Flattened tradeoff point."""

    vote_value: float
    cost_weight: float
    model_turnout: float
    model_turnout_se: float
    model_cost: float
    random_turnout: float
    random_cost: float
    treatment_shares: dict[str, float]
    n_matched: int


@dataclass
class ImportanceRow:
    """Flattened variable importance."""

    variable: str
    importance_mean: float
    importance_std: float
    metric: str


@dataclass
class UpliftReport:
    """Complete report for one uplift analysis run."""

    report_id: str
    title: str
    generated_at: str
    dataset: dict[str, Any]
    encoding: dict[str, Any]
    model: dict[str, Any]
    tradeoff: list[TradeoffRow]
    importance: list[ImportanceRow]
    summary_stats: dict[str, Any]
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def best_point(self) -> TradeoffRow | None:
        """Point with the largest turnout gain over random assignment."""
        if not self.tradeoff:
            return None
        return max(self.tradeoff, key=lambda r: r.model_turnout - r.random_turnout)


# =============================================================================
# CONVERSION FUNCTIONS
# =============================================================================


def tradeoff_to_row(
    point: TradeoffPoint,
    *,
    turnout_key: str = "voted",
    cost_key: str = "cost",
) -> TradeoffRow:
    """Convert a TradeoffPoint to a flat TradeoffRow."""
    weights = point.objective_weights
    return TradeoffRow(
        vote_value=float(weights[0]),
        cost_weight=float(weights[1]) if len(weights) > 1 else 0.0,
        model_turnout=point.model_erupt.get(turnout_key, float("nan")),
        model_turnout_se=point.model_erupt_se.get(turnout_key, float("nan")),
        model_cost=point.model_erupt.get(cost_key, float("nan")),
        random_turnout=point.random_erupt.get(turnout_key, float("nan")),
        random_cost=point.random_erupt.get(cost_key, float("nan")),
        treatment_shares=dict(point.treatment_shares),
        n_matched=point.n_matched,
    )


def importance_to_row(importance: VariableImportance) -> ImportanceRow:
    """Convert VariableImportance to ImportanceRow."""
    return ImportanceRow(
        variable=importance.variable,
        importance_mean=importance.importance_mean,
        importance_std=importance.importance_std,
        metric=importance.metric,
    )


# =============================================================================
# REPORT GENERATION
# =============================================================================


def generate_uplift_report(
    summary: DatasetSummary,
    tradeoff: list[TradeoffPoint],
    importances: list[VariableImportance],
    *,
    encoding: dict[str, Any] | None = None,
    model: dict[str, Any] | None = None,
    title: str = "GOTV Uplift Analysis",
    metadata: dict[str, Any] | None = None,
) -> UpliftReport:
    """
    Generate the uplift report.

    Args:
        summary: Dataset summary
        tradeoff: Tradeoff curve points
        importances: Permutation importances
        encoding: Encoding details (feature names, costs, ...)
        model: Model details (best params, metrics, ...)
        title: Report title
        metadata: Optional metadata to include

    Returns:
        UpliftReport
    """
    if not tradeoff:
        raise ReportGenerationError("Cannot build a report without tradeoff points", report_type="uplift")

    rows = [tradeoff_to_row(p) for p in tradeoff]
    imp_rows = [importance_to_row(i) for i in importances]

    gains = [r.model_turnout - r.random_turnout for r in rows]
    best = rows[int(np.argmax(gains))]

    summary_stats: dict[str, Any] = {
        "n_voters": summary.n_rows,
        "overall_turnout": summary.overall_turnout,
        "lift_over_control": summary.lift_over_control(),
        "n_tradeoff_points": len(rows),
        "max_turnout_gain_vs_random": float(max(gains)),
        "best_vote_value": best.vote_value,
        "best_turnout": best.model_turnout,
        "best_cost": best.model_cost,
        "top_variable": imp_rows[0].variable if imp_rows else None,
    }

    return UpliftReport(
        report_id=f"report_{datetime.now().strftime('%Y%m%d_%H%M%S')}",
        title=title,
        generated_at=datetime.now().isoformat(),
        dataset=summary.model_dump(),
        encoding=encoding or {},
        model=model or {},
        tradeoff=rows,
        importance=imp_rows,
        summary_stats=summary_stats,
        metadata=metadata or {},
    )


# =============================================================================
# JSON EXPORT
# =============================================================================


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types, tuples and paths."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def report_to_dict(report: UpliftReport) -> dict[str, Any]:
    """Convert report to dictionary."""
    return asdict(report)


def export_report_to_json(
    report: UpliftReport,
    filepath: str | Path | None = None,
    *,
    indent: int = 2,
) -> str:
    """
    Export report to JSON.

    Args:
        report: Report to export
        filepath: Optional file path to save to
        indent: JSON indentation

    Returns:
        JSON string

    Raises:
        ReportGenerationError: If export fails
    """
    try:
        json_str = json.dumps(report_to_dict(report), cls=NumpyEncoder, indent=indent)
    except (TypeError, ValueError) as e:
        raise ReportGenerationError(
            f"Failed to serialize report: {e}",
            report_type="json",
        ) from e

    if filepath:
        path = Path(filepath)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json_str, encoding="utf-8")
        except OSError as e:
            raise ReportGenerationError(
                f"Failed to write report to {path}: {e}",
                report_type="json",
            ) from e
        logger.info(f"Saved JSON report to {path}")

    return json_str


def load_report_from_json(filepath: str | Path) -> UpliftReport:
    """
    Load a report previously written by ``export_report_to_json``.

    Raises:
        ReportGenerationError: If the file cannot be parsed
    """
    path = Path(filepath)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return UpliftReport(
            report_id=data["report_id"],
            title=data["title"],
            generated_at=data["generated_at"],
            dataset=data["dataset"],
            encoding=data["encoding"],
            model=data["model"],
            tradeoff=[TradeoffRow(**row) for row in data["tradeoff"]],
            importance=[ImportanceRow(**row) for row in data["importance"]],
            summary_stats=data["summary_stats"],
            metadata=data.get("metadata", {}),
        )
    except (OSError, KeyError, TypeError, json.JSONDecodeError) as e:
        raise ReportGenerationError(
            f"Failed to load report from {path}: {e}",
            report_type="json",
        ) from e


# =============================================================================
# TEXT SUMMARY
# =============================================================================


def generate_text_summary(report: UpliftReport) -> str:
    """
    Human-readable summary of the report.

    Args:
        report: Report to summarise

    Returns:
        Formatted summary string
    """
    stats = report.summary_stats
    lines = [
        "=" * 60,
        report.title.upper(),
        "=" * 60,
        "",
        "DATA:",
        f"  - Voters: {stats['n_voters']:,}",
        f"  - Overall turnout: {stats['overall_turnout']:.1%}",
    ]

    for arm, lift in stats.get("lift_over_control", {}).items():
        lines.append(f"  - {arm} vs Control: {lift:+.2%}")

    lines.extend(["", "TRADEOFF CURVE:"])
    lines.append(f"  {'vote value':>10}  {'turnout':>8}  {'cost':>6}  {'random':>8}")
    for row in report.tradeoff:
        lines.append(
            f"  {row.vote_value:>10.2f}  {row.model_turnout:>8.3%}  "
            f"{row.model_cost:>6.3f}  {row.random_turnout:>8.3%}"
        )

    lines.extend(
        [
            "",
            f"  Largest gain over random targeting: {stats['max_turnout_gain_vs_random']:+.2%}"
            f" at vote value {stats['best_vote_value']:.2f}",
        ]
    )

    if report.importance:
        lines.extend(["", f"VARIABLE IMPORTANCE ({report.importance[0].metric}):"])
        for imp in report.importance:
            lines.append(f"  - {imp.variable:<10} {imp.importance_mean:.4f} (± {imp.importance_std:.4f})")

    lines.extend(["", "=" * 60])
    return "\n".join(lines)
