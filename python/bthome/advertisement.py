"""Apply the BTHome and Shelly decoders to one BLE advertisement."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Any, Mapping

from .decoder import DecodedBTHome, decode_bthome
from .manufacturer import (
    SHELLY_COMPANY_ID, ShellyManufacturerData, decode_shelly_manufacturer_data,
)

logger = logging.getLogger(__name__)

BTHOME_SERVICE_UUID = "fcd2"
_BLE_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"


def is_bthome_uuid(uuid: str) -> bool:
    """True for the BTHome service UUID in 16-bit or full 128-bit form."""
    u = uuid.strip().lower()
    if u.startswith("0x"):
        u = u[2:]
    short = f"0000{BTHOME_SERVICE_UUID}"
    return u in (BTHOME_SERVICE_UUID, short, short + _BLE_BASE_UUID_SUFFIX)


@dataclass
class Advertisement:
    bthome: DecodedBTHome | None = None
    shelly: ShellyManufacturerData | None = None
    other_service_data: dict[str, str] = field(default_factory=dict)

    @property
    def packet_id(self) -> int | None:
        if self.bthome is None:
            return None
        pid = self.bthome.readings.get("packetId")
        return pid if isinstance(pid, int) else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "bthome": self.bthome.to_dict() if self.bthome else None,
            "shelly": self.shelly.to_dict() if self.shelly else None,
            "otherServiceData": dict(self.other_service_data),
        }


def decode_advertisement(service_data: Mapping[str, bytes],
                         manufacturer_data: bytes | None = None) -> Advertisement:
    """Decode the service data and manufacturer data of one advertisement.

    *service_data* maps service UUID -> payload.  Non-BTHome entries are
    kept as hex; manufacturer data is only decoded when it carries the
    Shelly company id.
    """
    adv = Advertisement()
    for uuid, payload in service_data.items():
        if is_bthome_uuid(uuid):
            if payload:
                adv.bthome = decode_bthome(payload)
            else:
                logger.debug("skipping empty BTHome service data")
        else:
            adv.other_service_data[uuid] = bytes(payload).hex()

    if manufacturer_data and len(manufacturer_data) >= 2:
        company_id = struct.unpack_from("<H", manufacturer_data, 0)[0]
        if company_id == SHELLY_COMPANY_ID:
            adv.shelly = decode_shelly_manufacturer_data(manufacturer_data)
        else:
            logger.debug("ignoring manufacturer data for company 0x%04x",
                         company_id)
    return adv
