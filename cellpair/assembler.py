"""Build detection objects from segmentation masks.

Two modes:

- whole-cell only: one ``Detection`` per whole-cell region, no matching.
- paired: nuclei are matched to whole cells and each committed pair becomes
  a ``CellDetection``. Unmatched regions are dropped; only their counts are
  logged.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from cellpair.labeling import regions_from_label_mask
from cellpair.matcher import MatchResult, match_regions
from cellpair.region import ImagePlane, Region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Detection:
    """A single outlined object with no nucleus."""

    object_id: int
    roi: Region

    object_type = "Detection"

    @property
    def geometry(self):
        return self.roi.geometry

    @property
    def nucleus(self) -> Optional[Region]:
        return None


@dataclass(frozen=True)
class CellDetection:
    """A cell: whole-cell outline plus the nucleus matched to it."""

    object_id: int
    cell: Region
    nucleus: Region

    object_type = "Cell"

    @property
    def roi(self) -> Region:
        return self.cell

    @property
    def geometry(self):
        return self.cell.geometry


PathObject = Union[Detection, CellDetection]


def build_whole_cell_objects(whole_cells: Sequence[Region]) -> List[Detection]:
    return [Detection(i + 1, region) for i, region in enumerate(whole_cells)]


def build_cell_objects(
    nuclei: Sequence[Region], whole_cells: Sequence[Region]
) -> Tuple[List[CellDetection], MatchResult]:
    """Match regions and wrap each pair in a CellDetection."""
    result = match_regions(nuclei, whole_cells)
    objects = [
        CellDetection(i + 1, cell, nucleus)
        for i, (nucleus, cell) in enumerate(result.pairs)
    ]
    logger.info(f"Discarding {len(result.unmatched_nuclei)} unmatched nuclei ROIs")
    logger.info(f"Discarding {len(result.unmatched_whole_cells)} unmatched whole-cell ROIs")
    return objects, result


def extract_whole_cell_objects(
    whole_cell_mask,
    downsample: float = 1.0,
    plane: Optional[ImagePlane] = None,
) -> List[Detection]:
    """One detection per labeled whole-cell region."""
    whole_cells = regions_from_label_mask(whole_cell_mask, downsample, plane)
    return build_whole_cell_objects(whole_cells)


def extract_cell_objects(
    nucleus_mask,
    whole_cell_mask,
    downsample: float = 1.0,
    plane: Optional[ImagePlane] = None,
) -> List[CellDetection]:
    """Cell objects from matched nucleus / whole-cell masks.

    Returns an empty list when the nucleus mask holds no labels.
    """
    nuclei = regions_from_label_mask(nucleus_mask, downsample, plane)
    if not nuclei:
        return []
    whole_cells = regions_from_label_mask(whole_cell_mask, downsample, plane)
    logger.info(f"   Nucleus regions: {len(nuclei)}; whole-cell regions: {len(whole_cells)}")

    objects, _ = build_cell_objects(nuclei, whole_cells)
    return objects
