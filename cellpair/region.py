"""Region value types shared by the labeling, matching and assembly steps."""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional


class Envelope(NamedTuple):
    """Axis-aligned bounding box ``(min_x, min_y, max_x, max_y)``."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def from_bounds(cls, bounds) -> "Envelope":
        """Build an envelope from a shapely ``bounds`` tuple."""
        min_x, min_y, max_x, max_y = bounds
        return cls(float(min_x), float(min_y), float(max_x), float(max_y))

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def intersects(self, other: "Envelope") -> bool:
        # Closed intervals: touching boxes intersect.
        return not (
            other.min_x > self.max_x
            or other.max_x < self.min_x
            or other.min_y > self.max_y
            or other.max_y < self.min_y
        )

    def contains(self, other: "Envelope") -> bool:
        return (
            other.min_x >= self.min_x
            and other.max_x <= self.max_x
            and other.min_y >= self.min_y
            and other.max_y <= self.max_y
        )


@dataclass(frozen=True)
class ImagePlane:
    """Z-slice, timepoint and channel a region was extracted from.

    ``c = -1`` means the region applies to all channels.
    """

    z: int = 0
    t: int = 0
    c: int = -1


DEFAULT_PLANE = ImagePlane()


@dataclass(frozen=True, eq=False)
class Region:
    """Immutable labeled 2-D area.

    Equality and hashing are by identity, so two regions with identical
    geometry stay distinct. Matching bookkeeping uses ``region_id``.

    Attributes:
        region_id: Integer handle, unique within one region collection.
        geometry: shapely Polygon or MultiPolygon with positive area.
        label: Mask label id the region came from (None when built by hand).
        plane: Image plane metadata, not used for matching.
        envelope: Bounding box cached at construction.
    """

    region_id: int
    geometry: object
    label: Optional[int] = None
    plane: ImagePlane = DEFAULT_PLANE
    envelope: Envelope = field(init=False, repr=False)

    def __post_init__(self):
        if self.geometry is None or self.geometry.is_empty:
            raise ValueError(f"Region {self.region_id} has an empty geometry")
        if not self.geometry.area > 0:
            raise ValueError(f"Region {self.region_id} has zero area")
        object.__setattr__(self, "envelope", Envelope.from_bounds(self.geometry.bounds))

    @property
    def area(self) -> float:
        return self.geometry.area
