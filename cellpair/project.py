"""Per-image project entries and GeoJSON persistence of detection objects."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from shapely.geometry import mapping, shape

from cellpair.assembler import CellDetection
from cellpair.inputs import InputImage

logger = logging.getLogger(__name__)


@dataclass
class ProjectEntry:
    image: InputImage
    objects: List = field(default_factory=list)
    measurements: Optional[pd.DataFrame] = None
    objects_path: Optional[Path] = None

    @property
    def image_name(self) -> str:
        return self.image.image_name


def object_to_feature(obj) -> Dict:
    properties = {
        "objectType": obj.object_type,
        "objectId": obj.object_id,
        "label": obj.roi.label,
        "plane": {"z": obj.roi.plane.z, "t": obj.roi.plane.t, "c": obj.roi.plane.c},
    }
    if isinstance(obj, CellDetection):
        properties["nucleusLabel"] = obj.nucleus.label
        properties["nucleusGeometry"] = mapping(obj.nucleus.geometry)
    return {
        "type": "Feature",
        "geometry": mapping(obj.geometry),
        "properties": properties,
    }


def save_objects(objects: Sequence, out_path) -> Path:
    """Write detection objects as a GeoJSON FeatureCollection."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    collection = {
        "type": "FeatureCollection",
        "features": [object_to_feature(obj) for obj in objects],
    }
    with open(out_path, "w") as f:
        json.dump(collection, f)
    logger.info(f"Saved {len(objects)} objects to {out_path}")
    return out_path


def load_objects(path) -> List[Dict]:
    """Read features back, with geometries converted to shapely objects."""
    with open(path, "r") as f:
        collection = json.load(f)

    features = []
    for feature in collection.get("features", []):
        properties = dict(feature.get("properties", {}))
        if "nucleusGeometry" in properties:
            properties["nucleusGeometry"] = shape(properties["nucleusGeometry"])
        features.append({"geometry": shape(feature["geometry"]), "properties": properties})
    return features
