import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
from rasterio.features import rasterize
from rasterio.transform import Affine
from tqdm import tqdm

from cellpair.assembler import CellDetection

logger = logging.getLogger(__name__)

STATISTICS = ("Mean", "Median", "Min", "Max", "Std.Dev.")
CELL_COMPARTMENTS = ("Nucleus", "Cytoplasm", "Membrane", "Cell")
DETECTION_COMPARTMENTS = ("ROI",)

BASE_COLUMNS = [
    "Object ID",
    "Object type",
    "Label",
    "Nucleus label",
    "Centroid X px",
    "Centroid Y px",
]


def _update_interval(n_objects: int) -> int:
    """How many objects to process between progress log lines."""
    if n_objects <= 1:
        return 1
    if n_objects < 500:
        return max(1, n_objects // 5)
    if n_objects < 50000:
        return n_objects // 50
    return n_objects // 100


def _min_diameter(geometry) -> float:
    rect = geometry.minimum_rotated_rectangle
    if rect.geom_type != "Polygon":
        return 0.0
    coords = np.asarray(rect.exterior.coords)
    sides = np.hypot(*np.diff(coords, axis=0).T)
    return float(sides.min())


def _max_diameter(geometry) -> float:
    hull = geometry.convex_hull
    if hull.geom_type == "Polygon":
        coords = np.asarray(hull.exterior.coords)
    else:
        coords = np.asarray(hull.coords)
    if len(coords) < 2:
        return 0.0
    diffs = coords[:, None, :] - coords[None, :, :]
    return float(np.sqrt((diffs ** 2).sum(axis=-1)).max())


def shape_features(geometry) -> Dict[str, float]:
    """Area, perimeter and outline descriptors of one geometry (pixel units)."""
    area = geometry.area
    length = geometry.length
    hull_area = geometry.convex_hull.area
    circularity = 4 * np.pi * area / (length ** 2) if length > 0 else np.nan
    return {
        "Area px^2": area,
        "Length px": length,
        "Circularity": min(circularity, 1.0) if not np.isnan(circularity) else circularity,
        "Solidity": area / hull_area if hull_area > 0 else np.nan,
        "Max diameter px": _max_diameter(geometry),
        "Min diameter px": _min_diameter(geometry),
    }


def object_shape_features(obj) -> Dict[str, float]:
    if not isinstance(obj, CellDetection):
        return shape_features(obj.geometry)

    features = {}
    for prefix, geometry in (("Cell", obj.cell.geometry), ("Nucleus", obj.nucleus.geometry)):
        for name, value in shape_features(geometry).items():
            features[f"{prefix}: {name}"] = value
    features["Nucleus/Cell area ratio"] = obj.nucleus.area / obj.cell.area
    return features


def _pixel_window(geometry, height: int, width: int):
    min_x, min_y, max_x, max_y = geometry.bounds
    col0 = max(int(np.floor(min_x)), 0)
    row0 = max(int(np.floor(min_y)), 0)
    col1 = min(int(np.ceil(max_x)), width)
    row1 = min(int(np.ceil(max_y)), height)
    if col1 <= col0 or row1 <= row0:
        return None
    return row0, row1, col0, col1


def _rasterize(geometry, window, all_touched: bool = False) -> np.ndarray:
    row0, row1, col0, col1 = window
    return rasterize(
        [(geometry, 1)],
        out_shape=(row1 - row0, col1 - col0),
        transform=Affine.translation(col0, row0),
        fill=0,
        all_touched=all_touched,
        dtype="uint8",
    ).astype(bool)


def compartment_masks(obj, window) -> Dict[str, np.ndarray]:
    """Boolean pixel masks per compartment inside ``window``."""
    if not isinstance(obj, CellDetection):
        return {"ROI": _rasterize(obj.geometry, window)}

    cell = _rasterize(obj.cell.geometry, window)
    nucleus = _rasterize(obj.nucleus.geometry, window) & cell
    membrane = _rasterize(obj.cell.geometry.boundary, window, all_touched=True) & cell
    return {
        "Nucleus": nucleus,
        "Cytoplasm": cell & ~nucleus,
        "Membrane": membrane,
        "Cell": cell,
    }


def _statistics(values: np.ndarray) -> Dict[str, float]:
    if values.size == 0:
        return {stat: np.nan for stat in STATISTICS}
    return {
        "Mean": float(np.mean(values)),
        "Median": float(np.median(values)),
        "Min": float(np.min(values)),
        "Max": float(np.max(values)),
        "Std.Dev.": float(np.std(values)),
    }


def intensity_features(obj, image: np.ndarray, channels: Sequence[str]) -> Dict[str, float]:
    """Per-channel intensity statistics for every compartment of ``obj``.

    Args:
        obj: Detection or CellDetection in image pixel coordinates.
        image: Array of shape (C, H, W).
        channels: One name per image channel.
    """
    compartments = CELL_COMPARTMENTS if isinstance(obj, CellDetection) else DETECTION_COMPARTMENTS
    features = {}
    window = _pixel_window(obj.geometry, image.shape[1], image.shape[2])
    masks = compartment_masks(obj, window) if window is not None else {}

    for c, channel in enumerate(channels):
        plane = None
        if window is not None:
            row0, row1, col0, col1 = window
            plane = image[c, row0:row1, col0:col1]
        for compartment in compartments:
            mask = masks.get(compartment)
            values = plane[mask] if plane is not None and mask is not None else np.array([])
            for stat, value in _statistics(values.astype(np.float64)).items():
                features[f"{channel}: {compartment}: {stat}"] = value
    return features


def measure_objects(
    objects: Sequence,
    image: Optional[np.ndarray] = None,
    channels: Optional[Sequence[str]] = None,
    compute_shape: bool = True,
    compute_intensity: bool = True,
) -> pd.DataFrame:
    """Compute one measurement row per object.

    Intensity features need ``image`` (C, H, W); they are skipped when it
    is None.
    """
    n_objects = len(objects)
    logger.info(f"  DetectionObjects: {n_objects}")
    if n_objects == 0:
        return pd.DataFrame(columns=BASE_COLUMNS)

    if image is not None:
        image = np.asarray(image)
        if image.ndim == 2:
            image = image[np.newaxis, ...]
        if channels is None:
            channels = [f"Channel {i + 1}" for i in range(image.shape[0])]
        if len(channels) != image.shape[0]:
            raise ValueError(
                f"Got {len(channels)} channel names for an image with {image.shape[0]} channels"
            )
        logger.info(f"Computing intensity measurements for channels: {list(channels)}")

    update_every = _update_interval(n_objects)
    rows: List[Dict] = []
    with tqdm(
        total=n_objects,
        desc="Measuring objects",
        unit="object",
        mininterval=1.0,
        dynamic_ncols=True,
    ) as pbar:
        for processed, obj in enumerate(objects):
            if processed % update_every == 0:
                logger.info(f"{round(100 * processed / n_objects)}% complete")

            centroid = obj.geometry.centroid
            row = {
                "Object ID": obj.object_id,
                "Object type": obj.object_type,
                "Label": obj.roi.label,
                "Nucleus label": obj.nucleus.label if obj.nucleus is not None else None,
                "Centroid X px": centroid.x,
                "Centroid Y px": centroid.y,
            }
            if compute_shape:
                row.update(object_shape_features(obj))
            if compute_intensity and image is not None:
                row.update(intensity_features(obj, image, channels))
            rows.append(row)
            pbar.update(1)

    logger.info("100% complete")
    return pd.DataFrame(rows)
