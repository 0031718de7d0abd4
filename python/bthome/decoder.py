"""BTHome v2 service-data decoder."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .spec import BTHOME_SPEC, FieldSpec, decode_value, field_length

logger = logging.getLogger(__name__)

# Header ("device information") byte
HEADER_ENCRYPTED = 0b0000_0001
HEADER_TRIGGER = 0b0000_0100
HEADER_VERSION_SHIFT = 5
HEADER_VERSION_MASK = 0b111


@dataclass
class DecodedBTHome:
    """Result of decoding one BTHome service-data payload.

    ``trigger`` set means the device advertises irregularly (e.g. only on a
    button press) rather than at a fixed interval.
    """

    version: int
    encrypted: bool
    trigger: bool
    readings: dict[str, Any] = field(default_factory=dict)
    unknown: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "encrypted": self.encrypted,
            "trigger": self.trigger,
            "readings": dict(self.readings),
            "unknown": list(self.unknown),
        }


def _unknown_entry(data: bytes, offset: int) -> str:
    return f"0x{data[offset]:x} → 0x{data[offset:].hex()}"


def decode_bthome(data: bytes,
                  spec_table: Mapping[int, FieldSpec] = BTHOME_SPEC) -> DecodedBTHome:
    """Decode a BTHome v2 service-data payload (header byte included).

    Objects are read in order until the end of *data*.  The first id not in
    *spec_table*, or a value running past the end of *data*, ends decoding:
    the remaining bytes are reported in ``unknown`` since the width of an
    unrecognised object cannot be known.

    A repeated object id is disambiguated with a ``:N`` suffix; the first
    occurrence is renamed ``name:1`` when the second one arrives.
    """
    data = bytes(data)
    if not data:
        raise ValueError("BTHome payload is empty")

    info = data[0]
    result = DecodedBTHome(
        version=(info >> HEADER_VERSION_SHIFT) & HEADER_VERSION_MASK,
        encrypted=bool(info & HEADER_ENCRYPTED),
        trigger=bool(info & HEADER_TRIGGER),
    )
    readings = result.readings
    seen: dict[int, int] = {}

    offset = 1
    while offset < len(data):
        oid = data[offset]
        spec = spec_table.get(oid)
        length = field_length(spec, data, offset + 1) if spec else None
        if spec is None or length is None:
            # Can't resync without the object's width; keep the rest raw
            result.unknown.append(_unknown_entry(data, offset))
            logger.debug("stopping at %s object 0x%02x, offset %d",
                         "truncated" if spec else "unknown", oid, offset)
            break

        value = decode_value(spec, data, offset + 1)
        offset += 1 + length

        count = seen.get(oid, 0) + 1
        seen[oid] = count
        key = spec.name
        if count > 1:
            key = f"{spec.name}:{count}"
            if spec.name in readings:
                readings[f"{spec.name}:1"] = readings.pop(spec.name)
        readings[key] = value

    logger.debug("decoded BTHome v%d frame (%d bytes): %d readings, %d unknown",
                 result.version, len(data), len(readings), len(result.unknown))
    return result
