"""Tests for the Zone aggregate and ZIP normalisation."""

import pytest
from protean.exceptions import ValidationError
from storefront.zones.events import ZoneCreated, ZoneDisabled, ZoneZipsUpdated
from storefront.zones.zone import Zone, normalize_zip, normalize_zips

SQUARE = [[40.0, -74.0], [40.0, -73.0], [41.0, -73.0], [41.0, -74.0]]


class TestNormalizeZip:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("11354", "11354"),
            (" 11354 ", "11354"),
            ("11354-2210", "11354"),
            ("NY 10001", "10001"),
            (11355, "11355"),
            ("1135", ""),
            (None, ""),
        ],
    )
    def test_normalize_zip(self, raw, expected):
        assert normalize_zip(raw) == expected

    def test_normalize_zips_drops_blanks_and_duplicates(self):
        assert normalize_zips(["11354", "11354-1", "abc", "10001"]) == ["11354", "10001"]


class TestZone:
    def test_create_zone(self):
        zone = Zone.create(name="Flushing", zips=["11354", "11355-0001"])
        assert zone.enabled is True
        assert zone.zip_list == ["11354", "11355"]
        assert zone.polygon_points == []
        assert isinstance(zone._events[-1], ZoneCreated)

    def test_zone_needs_a_name(self):
        with pytest.raises(ValidationError):
            Zone.create(name=" ")

    def test_polygon_needs_three_points(self):
        with pytest.raises(ValidationError) as exc_info:
            Zone.create(name="Line", polygon=[[40.0, -74.0], [41.0, -73.0]])
        assert "polygon" in exc_info.value.messages

    def test_covers_zip(self):
        zone = Zone.create(name="Flushing", zips=["11354"])
        assert zone.covers_zip("11354-9999") is True
        assert zone.covers_zip("10001") is False
        assert zone.covers_zip("") is False

    def test_replace_zips(self):
        zone = Zone.create(name="Flushing", zips=["11354"])
        zone.replace_zips(["10001", "10002"])
        assert zone.zip_list == ["10001", "10002"]
        assert isinstance(zone._events[-1], ZoneZipsUpdated)

    def test_disable(self):
        zone = Zone.create(name="Flushing")
        zone.disable()
        assert zone.enabled is False
        assert isinstance(zone._events[-1], ZoneDisabled)


class TestContainsPoint:
    def test_point_inside(self):
        zone = Zone.create(name="Square", polygon=SQUARE)
        assert zone.contains_point(40.5, -73.5) is True

    def test_point_outside(self):
        zone = Zone.create(name="Square", polygon=SQUARE)
        assert zone.contains_point(42.0, -73.5) is False
        assert zone.contains_point(40.5, -72.0) is False

    def test_zone_without_polygon_contains_nothing(self):
        zone = Zone.create(name="Zips only", zips=["11354"])
        assert zone.contains_point(40.5, -73.5) is False
