"""
Reporting module for the GOTV uplift report.

Contains report assembly, HTML rendering and visualization utilities.
"""

from gotv_uplift.reporting.html import render_report_html, save_report_html
from gotv_uplift.reporting.report import (
    ImportanceRow,
    TradeoffRow,
    UpliftReport,
    export_report_to_json,
    generate_text_summary,
    generate_uplift_report,
    load_report_from_json,
)
from gotv_uplift.reporting.visuals import (
    close_figure,
    figure_to_base64,
    plot_responses_by_weight,
    plot_tradeoff_curve,
    plot_treatment_distribution,
    plot_turnout_by_treatment,
    plot_uplift_distribution,
    plot_variable_importance,
    save_figure,
    set_style,
)

__all__ = [
    # Report data classes
    "ImportanceRow",
    "TradeoffRow",
    "UpliftReport",
    # Report generation
    "export_report_to_json",
    "generate_text_summary",
    "generate_uplift_report",
    "load_report_from_json",
    # HTML
    "render_report_html",
    "save_report_html",
    # Visualizations
    "close_figure",
    "figure_to_base64",
    "plot_responses_by_weight",
    "plot_tradeoff_curve",
    "plot_treatment_distribution",
    "plot_turnout_by_treatment",
    "plot_uplift_distribution",
    "plot_variable_importance",
    "save_figure",
    "set_style",
]
