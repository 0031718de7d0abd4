"""Shelly BLU manufacturer-data decoder (Allterco, company id 0x0BA9).

Layout after the 2-byte company id is a sequence of blocks, each a type
byte followed by a payload whose size is implied by the type:

  0x01  flags      uint16 LE, bits 0-4 used
  0x0A  mac        6 bytes
  0x0B  model id   uint16 LE

Block types carry no length, so parsing stops at the first unknown type.
"""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)

SHELLY_COMPANY_ID = 0x0BA9
MIN_LENGTH = 10

BLOCK_FLAGS = 0x01
BLOCK_MAC = 0x0A
BLOCK_MODEL_ID = 0x0B

SHELLY_MODEL_SHORT_NAMES: Mapping[int, str] = MappingProxyType({
    0x0001: "SBBT-002C",
    0x0002: "SBDW-002C",
    0x0003: "SBHT-003C",
    0x0005: "SBMO-003Z",
    0x0006: "SBBT-004CEU",
    0x0007: "SBBT-004CUS",
    0x0008: "SBTR-001AEU",
})

SHELLY_MODEL_LONG_NAMES: Mapping[int, str] = MappingProxyType({
    0x0001: "Shelly BLU Button1",
    0x0002: "Shelly BLU DoorWindow",
    0x0003: "Shelly BLU HT",
    0x0005: "Shelly BLU Motion",
    0x0006: "Shelly BLU Wall Switch 4",
    0x0007: "Shelly BLU RC Button 4",
    0x0008: "Shelly BLU TRV",
})


def get_shelly_blu_short_name(model_id: int) -> str | None:
    return SHELLY_MODEL_SHORT_NAMES.get(model_id)


def get_shelly_blu_long_name(model_id: int) -> str | None:
    return SHELLY_MODEL_LONG_NAMES.get(model_id)


@dataclass
class ShellyFlags:
    discoverable: bool
    auth_enabled: bool
    rpc_enabled: bool
    buzzer_enabled: bool
    in_pairing_mode: bool

    @classmethod
    def from_raw(cls, raw: int) -> ShellyFlags:
        return cls(
            discoverable=bool(raw & (1 << 0)),
            auth_enabled=bool(raw & (1 << 1)),
            rpc_enabled=bool(raw & (1 << 2)),
            buzzer_enabled=bool(raw & (1 << 3)),
            in_pairing_mode=bool(raw & (1 << 4)),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "discoverable": self.discoverable,
            "authEnabled": self.auth_enabled,
            "rpcEnabled": self.rpc_enabled,
            "buzzerEnabled": self.buzzer_enabled,
            "inPairingMode": self.in_pairing_mode,
        }


@dataclass
class ShellyManufacturerData:
    company_id: int
    flags: ShellyFlags | None = None
    model_id: int | None = None
    model_id_short_name: str | None = None
    model_id_long_name: str | None = None
    mac: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly dict; absent fields are left out."""
        out: dict[str, Any] = {"companyId": self.company_id}
        if self.flags is not None:
            out["flags"] = self.flags.to_dict()
        optional = {
            "modelId": self.model_id,
            "modelIdShortName": self.model_id_short_name,
            "modelIdLongName": self.model_id_long_name,
            "mac": self.mac,
        }
        out.update((k, v) for k, v in optional.items() if v is not None)
        return out


def _to_bytes(data: bytes | str) -> bytes | None:
    if isinstance(data, str):
        try:
            return bytes.fromhex(re.sub(r"\s+", "", data))
        except ValueError:
            return None
    return bytes(data)


def decode_shelly_manufacturer_data(
        data: bytes | str) -> ShellyManufacturerData | None:
    """Decode Shelly manufacturer data from raw bytes or a hex string.

    Returns None when the input is shorter than 10 bytes, is not valid hex,
    or does not start with the Allterco company id.
    """
    buf = _to_bytes(data)
    if buf is None or len(buf) < MIN_LENGTH:
        logger.debug("manufacturer data rejected: too short or not hex")
        return None

    company_id = struct.unpack_from("<H", buf, 0)[0]
    if company_id != SHELLY_COMPANY_ID:
        logger.debug("manufacturer data rejected: company id 0x%04x", company_id)
        return None

    result = ShellyManufacturerData(company_id=company_id)
    offset = 2
    while offset < len(buf):
        block = buf[offset]
        offset += 1
        if block == BLOCK_FLAGS and offset + 2 <= len(buf):
            result.flags = ShellyFlags.from_raw(
                struct.unpack_from("<H", buf, offset)[0])
            offset += 2
        elif block == BLOCK_MODEL_ID and offset + 2 <= len(buf):
            model_id = struct.unpack_from("<H", buf, offset)[0]
            offset += 2
            result.model_id = model_id
            result.model_id_short_name = get_shelly_blu_short_name(model_id)
            result.model_id_long_name = get_shelly_blu_long_name(model_id)
        elif block == BLOCK_MAC and offset + 6 <= len(buf):
            result.mac = ":".join(f"{b:02x}" for b in buf[offset:offset + 6])
            offset += 6
        else:
            # Unknown or truncated block: no length to skip by
            logger.debug("stopping at block 0x%02x, offset %d", block, offset - 1)
            break

    return result
