"""bthome - BTHome v2 telemetry decoder and tooling."""

from .spec import FieldSpec, FieldKind, BTHOME_SPEC, validate_spec
from .decoder import DecodedBTHome, decode_bthome
from .manufacturer import (
    ShellyFlags, ShellyManufacturerData, decode_shelly_manufacturer_data,
    get_shelly_blu_short_name, get_shelly_blu_long_name, SHELLY_COMPANY_ID,
)
from .advertisement import Advertisement, decode_advertisement, is_bthome_uuid
from .capture import ReadingCapture

__all__ = [
    "FieldSpec", "FieldKind", "BTHOME_SPEC", "validate_spec",
    "DecodedBTHome", "decode_bthome",
    "ShellyFlags", "ShellyManufacturerData", "decode_shelly_manufacturer_data",
    "get_shelly_blu_short_name", "get_shelly_blu_long_name", "SHELLY_COMPANY_ID",
    "Advertisement", "decode_advertisement", "is_bthome_uuid",
    "ReadingCapture",
]
