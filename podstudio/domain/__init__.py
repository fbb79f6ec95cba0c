"""Domain layer definitions."""

from .batches import REFERENCE_SLOTS, Batch, BatchStatus, EditHistory, ReferenceAsset, Tier

__all__ = [
    "REFERENCE_SLOTS",
    "Batch",
    "BatchStatus",
    "EditHistory",
    "ReferenceAsset",
    "Tier",
]
