"""Feature encoding for the uplift model."""

from gotv_uplift.features.encoding import (
    DEFAULT_EXPLANATORY,
    EncodedDataset,
    EncodingConfig,
    GOTVEncoder,
    encode_explanatory,
    encode_responses,
    encode_treatments,
)

__all__ = [
    "DEFAULT_EXPLANATORY",
    "EncodedDataset",
    "EncodingConfig",
    "GOTVEncoder",
    "encode_explanatory",
    "encode_responses",
    "encode_treatments",
]
