"""Helper utilities for testing."""

from .region_fixtures import (
    box_region,
    make_regions,
    label_pairs,
    create_simple_mask_pair,
    create_unmatched_cells_case,
    create_partial_overlap_case,
)

__all__ = [
    "box_region",
    "make_regions",
    "label_pairs",
    "create_simple_mask_pair",
    "create_unmatched_cells_case",
    "create_partial_overlap_case",
]
