"""Domain events for the Zone aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Zone")
class ZoneCreated:
    __version__ = 1

    zone_id = Identifier(required=True)
    name = String(required=True)
    zip_count = Integer(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="Zone")
class ZoneZipsUpdated:
    """The ZIP whitelist of a zone was replaced."""

    __version__ = 1

    zone_id = Identifier(required=True)
    zip_count = Integer(required=True)
    updated_at = DateTime(required=True)


@storefront.event(part_of="Zone")
class ZoneDisabled:
    __version__ = 1

    zone_id = Identifier(required=True)
    disabled_at = DateTime(required=True)
