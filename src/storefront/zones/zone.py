"""Delivery Zone aggregate.

A zone is matched either by ZIP (a whitelist of 5-digit codes) or by a
polygon of ``[lat, lng]`` vertices. Only enabled zones take part in lookups.
"""

import json
import math
import re
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.zones.events import ZoneCreated, ZoneDisabled, ZoneZipsUpdated

_ZIP_PATTERN = re.compile(r"\d{5}")


def normalize_zip(value) -> str:
    """Return the first 5-digit run in ``value``, or an empty string."""
    match = _ZIP_PATTERN.search(str(value or "").strip())
    return match.group(0) if match else ""


def normalize_zips(values) -> list[str]:
    """Normalise, drop blanks and de-duplicate while keeping order."""
    seen = []
    for value in values or []:
        zip_code = normalize_zip(value)
        if zip_code and zip_code not in seen:
            seen.append(zip_code)
    return seen


def _validate_polygon(polygon):
    if polygon is None:
        return None
    if not isinstance(polygon, (list, tuple)):
        raise ValidationError({"polygon": ["Polygon must be a list of [lat, lng] points"]})
    if len(polygon) < 3:
        raise ValidationError({"polygon": ["A polygon needs at least 3 points"]})
    points = []
    for point in polygon:
        if not isinstance(point, (list, tuple)) or len(point) != 2:
            raise ValidationError({"polygon": ["Polygon points must be [lat, lng] pairs"]})
        try:
            lat, lng = float(point[0]), float(point[1])
        except (TypeError, ValueError):
            raise ValidationError({"polygon": [f"Polygon point {point} is not numeric"]}) from None
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValidationError({"polygon": [f"Polygon point {point} is not numeric"]})
        points.append([lat, lng])
    return points


@storefront.aggregate
class Zone:
    name = String(required=True, max_length=255)
    note = String(max_length=500)
    zips = Text(default="[]")  # JSON: list of 5-digit ZIPs
    polygon = Text()  # JSON: list of [lat, lng]
    enabled = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, zips=None, polygon=None, note=None):
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": ["Zone name is required"]})

        now = datetime.now(UTC)
        zip_list = normalize_zips(zips)
        points = _validate_polygon(polygon)
        zone = cls(
            name=name,
            note=note,
            zips=json.dumps(zip_list),
            polygon=json.dumps(points) if points else None,
            created_at=now,
            updated_at=now,
        )
        zone.raise_(ZoneCreated(zone_id=str(zone.id), name=name, zip_count=len(zip_list), created_at=now))
        return zone

    @property
    def zip_list(self) -> list[str]:
        return json.loads(self.zips) if self.zips else []

    @property
    def polygon_points(self) -> list[list[float]]:
        return json.loads(self.polygon) if self.polygon else []

    def replace_zips(self, zips):
        zip_list = normalize_zips(zips)
        now = datetime.now(UTC)
        self.zips = json.dumps(zip_list)
        self.updated_at = now
        self.raise_(ZoneZipsUpdated(zone_id=str(self.id), zip_count=len(zip_list), updated_at=now))

    def disable(self):
        if not self.enabled:
            return
        now = datetime.now(UTC)
        self.enabled = False
        self.updated_at = now
        self.raise_(ZoneDisabled(zone_id=str(self.id), disabled_at=now))

    def covers_zip(self, zip_code) -> bool:
        zip_code = normalize_zip(zip_code)
        return bool(zip_code) and zip_code in self.zip_list

    def contains_point(self, lat, lng) -> bool:
        """Ray casting point-in-polygon test."""
        points = self.polygon_points
        if len(points) < 3:
            return False

        inside = False
        j = len(points) - 1
        for i in range(len(points)):
            lat_i, lng_i = points[i]
            lat_j, lng_j = points[j]
            if (lng_i > lng) != (lng_j > lng):
                crossing = (lat_j - lat_i) * (lng - lng_i) / (lng_j - lng_i) + lat_i
                if lat < crossing:
                    inside = not inside
            j = i
        return inside


def _enabled_zones():
    zones = current_domain.repository_for(Zone)._dao.query.filter(enabled=True).order_by("created_at").all().items
    return list(zones)


def find_zone_for_zip(zip_code):
    """Return the first enabled zone whose whitelist holds ``zip_code``, or None."""
    zip_code = normalize_zip(zip_code)
    if not zip_code:
        return None
    return next((zone for zone in _enabled_zones() if zone.covers_zip(zip_code)), None)


def find_zone_for_point(lat, lng):
    """Return the first enabled zone whose polygon contains the point, or None."""
    if lat is None or lng is None:
        return None
    return next((zone for zone in _enabled_zones() if zone.contains_point(lat, lng)), None)
