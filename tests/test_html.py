"""
Tests for the HTML report renderer.
"""

import pytest

from gotv_uplift.exceptions import ReportGenerationError
from gotv_uplift.reporting.html import (
    _format_number,
    _format_percent,
    get_template_env,
    render_report_html,
    save_report_html,
)
from gotv_uplift.reporting.report import UpliftReport, generate_uplift_report


@pytest.fixture
def report(sample_summary, sample_points, sample_importances) -> UpliftReport:
    return generate_uplift_report(
        sample_summary,
        sample_points,
        sample_importances,
        encoding={
            "feature_names": ["age", "sex", "p2004"],
            "response_names": ["voted", "cost"],
            "treatment_costs": {"Control": 0.0, "Neighbors": 1.5},
            "n_train": 1400,
            "n_test": 600,
        },
        model={
            "best_params": {"mlp__hidden_layer_sizes": "(8,)"},
            "cv_mse": 0.91,
            "final_metrics": {"r2_voted": 0.05},
        },
        title="Test <Report>",
    )


class TestFilters:
    """Tests for the template filters."""

    def test_format_number(self) -> None:
        assert _format_number(12345) == "12,345"
        assert _format_number(1234.567, 2) == "1,234.57"

    def test_format_percent(self) -> None:
        assert _format_percent(0.1234) == "12.3%"
        assert _format_percent(0.1234, 2) == "12.34%"

    def test_env_registers_filters(self) -> None:
        env = get_template_env()
        assert {"format_number", "format_percent"} <= set(env.filters)
        assert env.get_template("report.html") is not None


class TestRenderReportHtml:
    """Tests for render_report_html."""

    def test_sections(self, report: UpliftReport) -> None:
        """Every narrative section is present."""
        html = render_report_html(report)
        for heading in ["Data", "Encoding", "Model", "Tradeoff Curves", "Variable Importance", "Interpretation"]:
            assert f"<h2>{heading}</h2>" in html
        assert "2,000" in html
        assert "<code>p2004</code>" in html

    def test_title_escaped(self, report: UpliftReport) -> None:
        """User-supplied text is HTML-escaped."""
        html = render_report_html(report)
        assert "Test &lt;Report&gt;" in html

    def test_embeds_figures(self, report: UpliftReport) -> None:
        """Figures are inlined as base64 PNG."""
        html = render_report_html(report, {"tradeoff_curve": "QUJD"})
        assert 'src="data:image/png;base64,QUJD"' in html

    def test_omits_missing_figures(self, report: UpliftReport) -> None:
        """No image tags without figures."""
        assert "<img" not in render_report_html(report)

    def test_minimal_report(self, sample_summary, sample_points) -> None:
        """Reports without encoding, model or importance details still render."""
        report = generate_uplift_report(sample_summary, sample_points, [])
        html = render_report_html(report)
        assert "Variable importance was not computed" in html

    def test_missing_template(self, report: UpliftReport, tmp_path) -> None:
        """A template directory without the report template fails cleanly."""
        with pytest.raises(ReportGenerationError) as exc_info:
            render_report_html(report, template_dir=tmp_path)
        assert exc_info.value.report_type == "html"

    def test_save(self, report: UpliftReport, tmp_path) -> None:
        """Rendered HTML is written to disk."""
        path = save_report_html(render_report_html(report), tmp_path / "nested" / "report.html")
        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith("<!DOCTYPE html>")
