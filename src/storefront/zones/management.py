"""Zone management commands and their handler."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, List, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.zones.zone import Zone

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Zone")
class CreateZone:
    name = String(required=True, max_length=255)
    zips = List(content_type=String)
    polygon = Text()  # JSON: list of [lat, lng]
    note = String(max_length=500)


@storefront.command(part_of="Zone")
class UpdateZoneZips:
    zone_id = Identifier(required=True)
    zips = List(content_type=String)


@storefront.command(part_of="Zone")
class DisableZone:
    zone_id = Identifier(required=True)


@storefront.command_handler(part_of=Zone)
class ManageZoneHandler:
    @handle(CreateZone)
    def create_zone(self, command):
        try:
            polygon = json.loads(command.polygon) if command.polygon else None
        except ValueError:
            raise ValidationError({"polygon": ["Polygon must be a JSON list of [lat, lng] points"]}) from None
        zone = Zone.create(name=command.name, zips=command.zips, polygon=polygon, note=command.note)
        current_domain.repository_for(Zone).add(zone)

        logger.info("Zone created", zone_id=str(zone.id), zips=len(zone.zip_list))
        return str(zone.id)

    @handle(UpdateZoneZips)
    def update_zips(self, command):
        repo = current_domain.repository_for(Zone)
        zone = repo.get(command.zone_id)
        zone.replace_zips(command.zips)
        repo.add(zone)
        return zone.zip_list

    @handle(DisableZone)
    def disable_zone(self, command):
        repo = current_domain.repository_for(Zone)
        zone = repo.get(command.zone_id)
        zone.disable()
        repo.add(zone)
