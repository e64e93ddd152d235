"""
HTML renderer for the uplift report using Jinja2 templates.

Renders an UpliftReport to a single self-contained HTML document:
- narrative sections (data, encoding, model, tradeoff, importance)
- figures embedded as base64 PNG
- tables for the tradeoff curve and variable importance
"""

import logging
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from gotv_uplift.exceptions import ReportGenerationError
from gotv_uplift.reporting.report import UpliftReport

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "report.html"


# =============================================================================
# TEMPLATE LOADING
# =============================================================================


def get_template_env(template_dir: Path | None = None) -> Environment:
    """Get Jinja2 environment with templates.

    Args:
        template_dir: Optional custom template directory

    Returns:
        Jinja2 Environment configured for report templates
    """
    if template_dir and template_dir.exists():
        loader = FileSystemLoader(str(template_dir))
    else:
        loader = FileSystemLoader(
            str(Path(__file__).parent / "templates"),
            encoding="utf-8",
        )

    env = Environment(
        loader=loader,
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )

    env.filters["format_number"] = _format_number
    env.filters["format_percent"] = _format_percent

    return env


def _format_number(value: float | int, decimals: int = 0) -> str:
    """Format number with thousand separators."""
    if isinstance(value, int) or decimals == 0:
        return f"{int(value):,}"
    return f"{value:,.{decimals}f}"


def _format_percent(value: float, decimals: int = 1) -> str:
    """Format as percentage."""
    return f"{value * 100:.{decimals}f}%"


# =============================================================================
# HTML RENDERING
# =============================================================================


def render_report_html(
    report: UpliftReport,
    figures: dict[str, str] | None = None,
    *,
    template_dir: Path | None = None,
) -> str:
    """Render a report to complete HTML.

    Args:
        report: The UpliftReport to render
        figures: Mapping of figure name to base64 PNG
            (see ``visuals.figure_to_base64``)
        template_dir: Optional directory overriding the packaged template

    Returns:
        Complete HTML document as string
    """
    figures = figures or {}
    context: dict[str, Any] = {
        "report": report,
        "stats": report.summary_stats,
        "dataset": report.dataset,
        "encoding": report.encoding,
        "model": report.model,
        "tradeoff": report.tradeoff,
        "importance": report.importance,
        "figures": figures,
    }

    env = get_template_env(template_dir)
    try:
        template = env.get_template(TEMPLATE_NAME)
        return template.render(**context)
    except Exception as e:
        raise ReportGenerationError(
            f"Failed to render HTML report: {e}",
            report_type="html",
        ) from e


# =============================================================================
# FILE OUTPUT
# =============================================================================


def save_report_html(html: str, output_path: Path | str) -> Path:
    """Save rendered HTML to file.

    Args:
        html: The rendered HTML string
        output_path: Path to write HTML file

    Returns:
        Path written
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(html)

    logger.info(f"Saved report to {output_path}")
    return output_path
