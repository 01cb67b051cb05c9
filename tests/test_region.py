import pytest
from shapely.geometry import LineString, Polygon, box

from cellpair.region import DEFAULT_PLANE, Envelope, ImagePlane, Region


class TestEnvelope:
    def test_from_bounds(self):
        env = Envelope.from_bounds(box(1, 2, 4, 8).bounds)
        assert env == Envelope(1.0, 2.0, 4.0, 8.0)
        assert env.width == 3.0
        assert env.height == 6.0

    def test_intersects_and_contains(self):
        outer = Envelope(0, 0, 10, 10)
        assert outer.contains(Envelope(2, 2, 3, 3))
        assert outer.contains(outer)
        assert not outer.contains(Envelope(5, 5, 11, 6))
        assert outer.intersects(Envelope(10, 0, 12, 2))
        assert not outer.intersects(Envelope(10.5, 0, 12, 2))


class TestRegion:
    def test_envelope_cached(self):
        region = Region(0, box(0, 0, 5, 3), label=7)
        assert region.envelope == Envelope(0, 0, 5, 3)
        assert region.area == 15
        assert region.label == 7
        assert region.plane == DEFAULT_PLANE

    def test_identical_geometry_is_not_equal(self):
        a = Region(0, box(0, 0, 1, 1))
        b = Region(1, box(0, 0, 1, 1))
        assert a != b
        assert len({a, b}) == 2
        assert a == a

    def test_immutable(self):
        region = Region(0, box(0, 0, 1, 1))
        with pytest.raises(AttributeError):
            region.label = 3

    def test_zero_area_rejected(self):
        with pytest.raises(ValueError, match="zero area"):
            Region(0, LineString([(0, 0), (1, 1)]))

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            Region(0, Polygon())

    def test_plane_metadata(self):
        region = Region(3, box(0, 0, 1, 1), plane=ImagePlane(z=2, t=1))
        assert region.plane.z == 2
        assert region.plane.t == 1
        assert region.plane.c == -1
