"""
Data module for the GOTV uplift report.

Contains the voter-file loader, schemas and synthetic generation.
"""

from gotv_uplift.data.loader import (
    GOTVDataLoader,
    LoadResult,
    load_gotv_data,
    normalize_frame,
    summarize_dataset,
)
from gotv_uplift.data.schemas import (
    DEFAULT_TREATMENT_COSTS,
    DatasetSummary,
    TradeoffPoint,
    TreatmentArm,
    TreatmentCost,
    VariableImportance,
)
from gotv_uplift.data.synthetic_generator import (
    SyntheticGOTVGenerator,
    generate_small_dataset,
)

__all__ = [
    # Loading
    "GOTVDataLoader",
    "LoadResult",
    "load_gotv_data",
    "normalize_frame",
    "summarize_dataset",
    # Schemas
    "DEFAULT_TREATMENT_COSTS",
    "DatasetSummary",
    "TradeoffPoint",
    "TreatmentArm",
    "TreatmentCost",
    "VariableImportance",
    # Synthetic data
    "SyntheticGOTVGenerator",
    "generate_small_dataset",
]
