"""Convert labeled masks into Region geometries.

Each non-zero label becomes one Region whose geometry traces the pixel
edges of every pixel carrying that label. Labels that are missing from the
mask simply produce no Region, so region ids stay dense while label ids
may have gaps.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

import numpy as np
from rasterio.features import shapes
from shapely.affinity import scale
from shapely.geometry import shape
from shapely.ops import unary_union

from cellpair.region import DEFAULT_PLANE, ImagePlane, Region

logger = logging.getLogger(__name__)

_INT32_MAX = np.iinfo(np.int32).max


def prepare_label_mask(mask) -> np.ndarray:
    """Validate a label mask and return it as a 2-D int32 array.

    Raises:
        ValueError: For RGB masks, masks that are not 2-D after squeezing,
            non-integral float labels, negative labels or labels too large
            for int32.
    """
    arr = np.asarray(mask)
    if arr.ndim == 3 and arr.shape[-1] in (3, 4) and arr.shape[0] > 1:
        raise ValueError("RGB images are not supported!")
    arr = np.squeeze(arr)
    if arr.ndim != 2:
        raise ValueError(f"Label mask must be 2-D, got shape {np.shape(mask)}")
    if arr.size == 0:
        return arr.astype(np.int32)

    if np.issubdtype(arr.dtype, np.floating):
        if not np.all(np.isfinite(arr)) or not np.all(np.mod(arr, 1) == 0):
            raise ValueError("Label mask contains non-integer values; labels cannot be recovered")
    elif arr.dtype == bool:
        arr = arr.astype(np.uint8)
    elif not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"Unsupported label mask dtype: {arr.dtype}")

    if arr.min() < 0:
        raise ValueError("Label mask contains negative labels")
    if arr.max() > _INT32_MAX:
        raise ValueError(f"Label mask max label {arr.max()} does not fit in int32")
    return arr.astype(np.int32, copy=False)


def label_geometries(mask: np.ndarray) -> Dict[int, object]:
    """Return ``{label: geometry}`` in pixel coordinates for every non-zero label."""
    parts = defaultdict(list)
    for geom, value in shapes(mask, mask=mask > 0, connectivity=4):
        parts[int(value)].append(shape(geom))
    return {label: unary_union(parts[label]) for label in sorted(parts)}


def regions_from_label_mask(
    mask,
    downsample: float = 1.0,
    plane: Optional[ImagePlane] = None,
) -> List[Region]:
    """Extract one Region per label present in ``mask``.

    Args:
        mask: Labeled mask (H, W); 0 is background.
        downsample: Factor applied to coordinates so regions line up with a
            full-resolution image.
        plane: Image plane stored on every Region.

    Returns:
        Regions in ascending label order. ``region_id`` is the position in
        the returned list; ``label`` is the mask value.
    """
    arr = prepare_label_mask(mask)
    plane = plane or DEFAULT_PLANE
    n = int(arr.max()) if arr.size else 0
    logger.info(f"   Max label: {n}")
    if n == 0:
        logger.info(" >>> No objects found! <<<")
        return []

    regions = []
    for label, geom in label_geometries(arr).items():
        if downsample != 1.0:
            geom = scale(geom, xfact=downsample, yfact=downsample, origin=(0, 0))
        if geom.is_empty or geom.area <= 0:
            logger.debug(f"Skipping label {label}: empty geometry")
            continue
        regions.append(Region(len(regions), geom, label=label, plane=plane))

    if len(regions) < n:
        logger.debug(f"{n - len(regions)} label ids between 1 and {n} produced no region")
    return regions
