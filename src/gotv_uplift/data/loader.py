"""
Local data loader for the GOTV voter file.

Reads the Gerber, Green & Larimer (2008) social-pressure experiment from CSV
or parquet into a pandas DataFrame with normalised column values:

- treatment labels are stripped and matched case-insensitively
  (the public file ships labels such as " Civic Duty")
- yes/no style voting-history flags become 0/1 integers
- sex becomes 0 (male) / 1 (female)
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from gotv_uplift.data.schemas import DatasetSummary, TreatmentArm
from gotv_uplift.exceptions import DataValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# COLUMN DEFINITIONS
# =============================================================================

TREATMENT_COL = "treatment"
RESPONSE_COL = "voted"
HOUSEHOLD_COL = "hh_id"

REQUIRED_COLUMNS = [TREATMENT_COL, RESPONSE_COL]

# Voting history: general (g) and primary (p) elections
HISTORY_COLUMNS = ["g2000", "g2002", "g2004", "p2000", "p2002", "p2004"]

NUMERIC_COLUMNS = ["yob", "hh_size"]

BOOLEAN_TOKENS: dict[str, int] = {
    "yes": 1,
    "no": 0,
    "y": 1,
    "n": 0,
    "true": 1,
    "false": 0,
    "1": 1,
    "0": 0,
    "1.0": 1,
    "0.0": 0,
}

SEX_TOKENS: dict[str, int] = {
    "male": 0,
    "m": 0,
    "0": 0,
    "female": 1,
    "f": 1,
    "1": 1,
}


@dataclass
class LoadResult:
    """Result of loading the voter file."""

    frame: pd.DataFrame
    source: Path | None = None
    n_rows: int = 0
    n_dropped: int = 0
    load_duration_ms: float = 0.0
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# VALUE NORMALISATION
# =============================================================================


def _map_tokens(series: pd.Series, tokens: dict[str, int], column: str) -> pd.Series:
    """Map string-ish values through a token table, raising on unknown values."""
    if pd.api.types.is_bool_dtype(series):
        return series.astype(int)

    normalized = series.astype(str).str.strip().str.lower()
    mapped = normalized.map(tokens)
    unknown = series.notna() & mapped.isna()
    if unknown.any():
        bad_value = series[unknown].iloc[0]
        raise DataValidationError(
            f"Cannot parse value in column '{column}'",
            field=column,
            value=bad_value,
            context={"n_invalid": int(unknown.sum())},
        )
    return mapped


def normalize_treatments(series: pd.Series) -> pd.Series:
    """Normalise raw treatment labels to canonical ``TreatmentArm`` values."""
    labels: dict[Any, str] = {}
    for raw in series.dropna().unique():
        try:
            labels[raw] = TreatmentArm.from_label(raw).value
        except ValueError as e:
            raise DataValidationError(
                str(e),
                field=TREATMENT_COL,
                value=raw,
            ) from e
    return series.map(labels)


def normalize_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Return a normalised copy of a raw GOTV frame.

    Raises:
        DataValidationError: If required columns are missing or values
            cannot be parsed
    """
    out = df.copy()
    out.columns = [str(c).strip() for c in out.columns]

    missing = [c for c in REQUIRED_COLUMNS if c not in out.columns]
    if missing:
        raise DataValidationError(
            f"Missing required columns: {missing}",
            field="columns",
            context={"available": list(out.columns)},
        )

    out[TREATMENT_COL] = normalize_treatments(out[TREATMENT_COL])
    out[RESPONSE_COL] = _map_tokens(out[RESPONSE_COL], BOOLEAN_TOKENS, RESPONSE_COL)

    for col in HISTORY_COLUMNS:
        if col in out.columns:
            out[col] = _map_tokens(out[col], BOOLEAN_TOKENS, col)

    if "sex" in out.columns:
        out["sex"] = _map_tokens(out["sex"], SEX_TOKENS, "sex")

    for col in NUMERIC_COLUMNS:
        if col in out.columns:
            converted = pd.to_numeric(out[col], errors="coerce")
            bad = out[col].notna() & converted.isna()
            if bad.any():
                raise DataValidationError(
                    f"Non-numeric value in column '{col}'",
                    field=col,
                    value=out.loc[bad, col].iloc[0],
                )
            out[col] = converted

    return out


# =============================================================================
# LOADER
# =============================================================================


class GOTVDataLoader:
    """
    Load the GOTV voter file from local CSV or parquet.

    Usage:
        loader = GOTVDataLoader("data/gotv.csv")
        result = loader.load()

        from gotv_uplift.pipeline import run_pipeline
        pipeline_result = run_pipeline(data=result.frame)
    """

    def __init__(
        self,
        path: str | Path,
        *,
        columns: list[str] | None = None,
        drop_missing: bool = True,
    ) -> None:
        """
        Initialize loader.

        Args:
            path: CSV or parquet file
            columns: Only keep these columns (required columns are always kept)
            drop_missing: Drop rows with missing values in the kept columns
        """
        self.path = Path(path)
        self.columns = columns
        self.drop_missing = drop_missing

    def _read(self) -> pd.DataFrame:
        suffix = self.path.suffix.lower()
        if suffix in (".parquet", ".pq"):
            return pd.read_parquet(self.path)
        if suffix in (".csv", ".txt", ".gz"):
            return pd.read_csv(self.path)
        raise DataValidationError(
            f"Unsupported file type: {suffix}",
            field="path",
            value=str(self.path),
        )

    def load(self) -> LoadResult:
        """
        Load and normalise the voter file.

        Returns:
            LoadResult with normalised frame and statistics

        Raises:
            FileNotFoundError: If the file doesn't exist
            DataValidationError: If the file fails validation
        """
        start_time = time.perf_counter()

        if not self.path.exists():
            raise FileNotFoundError(f"Data file not found: {self.path}")

        logger.info(f"Loading GOTV data from {self.path}")
        raw = self._read()
        frame = normalize_frame(raw)

        if self.columns is not None:
            keep = list(dict.fromkeys(REQUIRED_COLUMNS + self.columns))
            absent = [c for c in keep if c not in frame.columns]
            if absent:
                raise DataValidationError(
                    f"Requested columns not in file: {absent}",
                    field="columns",
                )
            frame = frame[keep]

        result = LoadResult(frame=frame, source=self.path)

        if self.drop_missing:
            before = len(frame)
            frame = frame.dropna().reset_index(drop=True)
            result.n_dropped = before - len(frame)
            if result.n_dropped:
                msg = f"Dropped {result.n_dropped} rows with missing values"
                result.warnings.append(msg)
                logger.warning(msg)

        result.frame = frame
        result.n_rows = len(frame)
        result.load_duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Loaded {result.n_rows:,} rows in {result.load_duration_ms:.1f}ms")
        return result


def load_gotv_data(path: str | Path, **kwargs: Any) -> pd.DataFrame:
    """Convenience function returning just the normalised frame."""
    return GOTVDataLoader(path, **kwargs).load().frame


# =============================================================================
# SUMMARY
# =============================================================================


def summarize_dataset(df: pd.DataFrame) -> DatasetSummary:
    """
    Compute per-arm counts and turnout rates.

    Args:
        df: Normalised GOTV frame

    Returns:
        DatasetSummary
    """
    if df.empty:
        raise DataValidationError("Cannot summarize an empty frame", field="rows", value=0)

    grouped = df.groupby(TREATMENT_COL, observed=True)[RESPONSE_COL]
    counts = grouped.size()
    rates = grouped.mean()

    order = [arm.value for arm in TreatmentArm.ordered() if arm.value in counts.index]

    return DatasetSummary(
        n_rows=len(df),
        n_households=int(df[HOUSEHOLD_COL].nunique()) if HOUSEHOLD_COL in df.columns else None,
        arm_counts={arm: int(counts[arm]) for arm in order},
        turnout_by_arm={arm: float(np.round(rates[arm], 6)) for arm in order},
        overall_turnout=float(df[RESPONSE_COL].mean()),
    )
