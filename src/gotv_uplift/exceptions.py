"""
Module: exceptions

Purpose: Domain-specific exception hierarchy for the GOTV uplift report.

Every error carries a context dict describing the failing input. Raise these rather than returning None.
"""

from typing import Any


class UpliftReportError(Exception):
    """Base exception for all uplift report errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


class DataValidationError(UpliftReportError):
    """Raised when input data fails schema or value validation."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if field is not None:
            ctx["field"] = field
        if value is not None:
            ctx["value"] = value
        super().__init__(message, context=ctx)
        self.field = field
        self.value = value


class InsufficientDataError(UpliftReportError):
    """Raised when there is insufficient data for analysis."""

    def __init__(
        self,
        message: str,
        *,
        required: int,
        actual: int,
        data_type: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        ctx["required"] = required
        ctx["actual"] = actual
        ctx["data_type"] = data_type
        super().__init__(message, context=ctx)
        self.required = required
        self.actual = actual
        self.data_type = data_type


class ModelNotFittedError(UpliftReportError):
    """Raised when predictions are requested from an unfitted model."""

    def __init__(
        self,
        message: str = "Uplift model has not been fitted",
        *,
        operation: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if operation is not None:
            ctx["operation"] = operation
        super().__init__(message, context=ctx)
        self.operation = operation


class ReportGenerationError(UpliftReportError):
    """Raised when report generation fails."""

    def __init__(
        self,
        message: str,
        *,
        report_type: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if report_type is not None:
            ctx["report_type"] = report_type
        super().__init__(message, context=ctx)
        self.report_type = report_type


class PipelineError(UpliftReportError):
    """Raised when a pipeline stage cannot continue."""

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if stage is not None:
            ctx["stage"] = stage
        super().__init__(message, context=ctx)
        self.stage = stage


class ConfigurationError(UpliftReportError):
    """Raised when settings or configuration values are invalid."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if setting is not None:
            ctx["setting"] = setting
        super().__init__(message, context=ctx)
        self.setting = setting
