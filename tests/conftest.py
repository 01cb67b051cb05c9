"""
Pytest configuration and shared fixtures for the test suite.

This module provides:
- Scenario regions for matcher tests
- A synthetic on-disk workspace (images + masks) for pipeline tests
"""

import pytest
import numpy as np
import tifffile

from tests.utils.region_fixtures import (
    create_simple_mask_pair,
    make_regions,
)


# =============================================================================
# Region Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def contained_scenario():
    """
    One nucleus inside whole cell 1, a second whole cell far away.

    Returns:
        tuple: (nuclei, whole_cells)
    """
    nuclei = make_regions([(2, 2, 6, 6)])
    whole_cells = make_regions([(0, 0, 10, 10), (50, 50, 60, 60)])
    return nuclei, whole_cells


# =============================================================================
# Workspace Fixtures
# =============================================================================

def _write_tiff(path, array):
    tifffile.imwrite(str(path), array, photometric="minisblack")


@pytest.fixture(scope="function")
def synthetic_workspace(tmp_path):
    """
    Function-scoped workspace laid out as OMETIFF/ and SEGMASKS/.

    Samples:
        - S1: image + nucleus mask + whole-cell mask (paired mode)
        - S2: image + whole-cell mask only (whole-cell-only mode)
        - S3: image with no masks (skipped with a warning)

    Returns:
        dict: Paths and expected object counts per sample.
    """
    images_dir = tmp_path / "OMETIFF"
    masks_dir = tmp_path / "SEGMASKS"
    images_dir.mkdir()
    masks_dir.mkdir()

    cell_mask, nucleus_mask, expected = create_simple_mask_pair(
        n_cells=4, image_size=(128, 128), cell_radius=16, nucleus_radius=6
    )

    image = np.zeros((2, 128, 128), dtype=np.uint16)
    image[0][nucleus_mask > 0] = 100
    image[1][cell_mask > 0] = 50

    for sample in ("S1", "S2", "S3"):
        _write_tiff(images_dir / f"{sample}.tiff", image)

    _write_tiff(masks_dir / "S1_NucleusMask.tiff", nucleus_mask)
    _write_tiff(masks_dir / "S1_WholeCellMask.tiff", cell_mask)
    _write_tiff(masks_dir / "S2_WholeCellMask.tiff", cell_mask)

    return {
        "root": tmp_path,
        "images_dir": images_dir,
        "masks_dir": masks_dir,
        "n_cells": expected["n_cells"],
    }
