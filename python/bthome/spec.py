"""BTHome v2 object table and per-kind value decoding.

Every object id a BTHome v2 advertisement can carry maps to a FieldSpec
describing how many bytes follow the id and how to turn them into a value.
Plain numeric objects share one generic decode (little-endian integer,
scaled by ``factor``); events, timestamps, firmware versions and the
length-prefixed text/raw blobs select a dedicated decode through ``kind``.

Object ids and scaling follow https://bthome.io/format/.
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Callable, Mapping


class FieldKind(IntEnum):
    NUMBER = 0
    TEXT = 1
    RAW = 2
    BUTTON = 3
    DIMMER = 4
    TIMESTAMP = 5
    FIRMWARE = 6
    FIRMWARE_SHORT = 7


@dataclass(frozen=True)
class FieldSpec:
    """One BTHome object.

    ``size`` is None for length-prefixed objects, whose first payload byte
    holds the length of the data that follows.
    """

    id: int
    name: str
    size: int | None
    signed: bool = False
    factor: float = 1
    kind: FieldKind = FieldKind.NUMBER

    @property
    def length_prefixed(self) -> bool:
        return self.size is None


BUTTON_EVENTS: Mapping[int, str] = MappingProxyType({
    0x00: "none",
    0x01: "single_press",
    0x02: "double_press",
    0x03: "triple_press",
    0x04: "long_press",
    0x05: "long_double_press",
    0x06: "long_triple_press",
    0x80: "hold_press",
    0xFE: "hold_press",
})

DIMMER_EVENTS: Mapping[int, str] = MappingProxyType({
    0x00: "none",
    0x01: "rotateLeft",
    0x02: "rotateRight",
})


LENGTH_PREFIXED_KINDS = frozenset({FieldKind.TEXT, FieldKind.RAW})


def _binary(oid: int, name: str) -> FieldSpec:
    """Binary sensor: uint8, 0 or 1."""
    return FieldSpec(oid, name, 1)


_ENTRIES = [
    # Packet id
    FieldSpec(0x00, "packetId", 1),

    # Standard sensor data
    FieldSpec(0x01, "battery", 1),
    FieldSpec(0x02, "temperature", 2, True, 0.01),
    FieldSpec(0x03, "humidity", 2, False, 0.01),
    FieldSpec(0x04, "pressure", 3, False, 0.01),
    FieldSpec(0x05, "illuminance", 3, False, 0.01),
    FieldSpec(0x06, "massKilograms", 2, False, 0.01),
    FieldSpec(0x07, "massPounds", 2, False, 0.01),
    FieldSpec(0x08, "dewPoint", 2, True, 0.01),
    FieldSpec(0x09, "countSmall", 1),
    FieldSpec(0x0A, "energy_kWh", 3, False, 0.001),
    FieldSpec(0x0B, "power_W", 3, False, 0.01),
    FieldSpec(0x0C, "voltage_V", 2, False, 0.001),
    FieldSpec(0x0D, "pm2_5_ugm3", 2),
    FieldSpec(0x0E, "pm10_ugm3", 2),
    FieldSpec(0x13, "tvoc_ugm3", 2),
    FieldSpec(0x14, "moisture", 2, False, 0.01),
    FieldSpec(0x2E, "humidity", 1),
    FieldSpec(0x2F, "moisture", 1),

    # Extended sensor data
    FieldSpec(0x3F, "rotation_deg", 2, True, 0.1),
    FieldSpec(0x40, "distance_mm", 2),
    FieldSpec(0x41, "distance_m", 2, False, 0.1),
    FieldSpec(0x42, "duration_s", 3, False, 0.001),
    FieldSpec(0x43, "current_A", 2, False, 0.001),
    FieldSpec(0x44, "speed_ms", 2, False, 0.01),
    FieldSpec(0x45, "temperature", 2, True, 0.1),
    FieldSpec(0x46, "uvIndex", 1, False, 0.1),
    FieldSpec(0x47, "volume_L", 2, False, 0.1),
    FieldSpec(0x48, "volume_mL", 2),
    FieldSpec(0x49, "flowRate_m3ph", 2, False, 0.001),
    FieldSpec(0x4A, "voltage_alt_V", 2, False, 0.1),
    FieldSpec(0x4B, "gas_m3", 3, False, 0.001),
    FieldSpec(0x4C, "gas_alt_m3", 4, False, 0.001),
    FieldSpec(0x4D, "energy_alt_kWh", 4, False, 0.001),
    FieldSpec(0x4E, "volume_alt_L", 4, False, 0.001),
    FieldSpec(0x4F, "water_L", 4, False, 0.001),
    FieldSpec(0x52, "gyroscope_dps", 2, False, 0.001),
    FieldSpec(0x53, "text", None, kind=FieldKind.TEXT),
    FieldSpec(0x54, "raw", None, kind=FieldKind.RAW),
    FieldSpec(0x55, "volumeStorage_L", 4, False, 0.001),
    FieldSpec(0x57, "temperature", 1, True, 1),
    FieldSpec(0x58, "temperature", 1, True, 0.35),
    FieldSpec(0x59, "count8", 1, True),
    FieldSpec(0x5A, "count16", 2, True),
    FieldSpec(0x5B, "count32", 4, True),
    FieldSpec(0x5C, "power_alt_W", 4, True, 0.01),
    FieldSpec(0x5D, "current_alt_A", 2, True, 0.001),
    FieldSpec(0x5E, "direction_deg", 2, False, 0.01),
    FieldSpec(0x5F, "precipitation_mm", 2),

    # Binary sensors
    _binary(0x0F, "genericBoolean"),
    _binary(0x10, "powerState"),
    _binary(0x11, "openingState"),
    _binary(0x15, "batteryState"),          # 0 normal, 1 low
    _binary(0x16, "batteryChargingState"),  # 0 not charging, 1 charging
    _binary(0x17, "carbonMonoxideState"),
    _binary(0x18, "coldState"),
    _binary(0x19, "connectivityState"),
    _binary(0x1A, "doorState"),             # 0 closed, 1 open
    _binary(0x1B, "garageDoorState"),       # 0 closed, 1 open
    _binary(0x1C, "gasState"),
    _binary(0x1D, "heatState"),
    _binary(0x1E, "lightState"),
    _binary(0x1F, "lockState"),
    _binary(0x20, "moistureState"),
    _binary(0x21, "motionState"),           # 0 clear, 1 detected
    _binary(0x22, "movingState"),
    _binary(0x23, "occupancyState"),        # 0 clear, 1 detected
    _binary(0x24, "plugState"),
    _binary(0x25, "presenceState"),
    _binary(0x26, "problemState"),
    _binary(0x27, "runningState"),
    _binary(0x28, "safetyState"),
    _binary(0x29, "smokeState"),
    _binary(0x2A, "soundState"),
    _binary(0x2B, "tamperState"),
    _binary(0x2C, "vibrationState"),
    _binary(0x2D, "windowState"),           # 0 closed, 1 open

    # Events
    FieldSpec(0x3A, "button", 1, kind=FieldKind.BUTTON),
    FieldSpec(0x3C, "dimmerEvent", 2, kind=FieldKind.DIMMER),

    # Time
    FieldSpec(0x50, "timestamp", 4, kind=FieldKind.TIMESTAMP),

    # Device information
    FieldSpec(0xF0, "deviceTypeId", 2),
    FieldSpec(0xF1, "firmwareVersion", 4, kind=FieldKind.FIRMWARE),
    FieldSpec(0xF2, "firmwareVersionShort", 3, kind=FieldKind.FIRMWARE_SHORT),
]

BTHOME_SPEC: Mapping[int, FieldSpec] = MappingProxyType(
    {e.id: e for e in _ENTRIES})


# ---------------------------------------------------------------------------
# Value decoding
# ---------------------------------------------------------------------------

def decimals_for(factor: float) -> int:
    """Decimal places kept for a scale factor: 0.01 -> 2, 0.35 -> 0."""
    if factor >= 1:
        return 0
    return int(math.log10(1 / factor) + 1e-9)


def decode_number(spec: FieldSpec, data: bytes, offset: int) -> int | float:
    """Generic path: little-endian integer times ``spec.factor``."""
    if spec.size is None:
        raise ValueError(f"BTHome spec for {spec.name} is missing 'size'")
    raw = int.from_bytes(data[offset:offset + spec.size], "little",
                         signed=spec.signed)
    places = decimals_for(spec.factor)
    value = Decimal(raw * spec.factor).quantize(
        Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    return int(value) if places == 0 else float(value)


def _prefixed(data: bytes, offset: int) -> bytes:
    return data[offset + 1:offset + 1 + data[offset]]


def _decode_text(data: bytes, offset: int) -> str:
    return _prefixed(data, offset).decode("utf-8", errors="replace")


def _decode_raw(data: bytes, offset: int) -> str:
    return _prefixed(data, offset).hex()


def _decode_button(data: bytes, offset: int) -> str:
    return BUTTON_EVENTS.get(data[offset], "unknown")


def _decode_dimmer(data: bytes, offset: int) -> dict[str, Any]:
    evt, steps = data[offset], data[offset + 1]
    return {"event": DIMMER_EVENTS.get(evt, f"evt0x{evt:x}"), "steps": steps}


def _decode_timestamp(data: bytes, offset: int) -> str:
    seconds = struct.unpack_from("<I", data, offset)[0]
    ts = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return ts.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _decode_firmware(data: bytes, offset: int) -> str:
    build, patch, minor, major = data[offset:offset + 4]
    return f"{major}.{minor}.{patch}.{build}"


def _decode_firmware_short(data: bytes, offset: int) -> str:
    minor, patch, major = data[offset:offset + 3]
    return f"{major}.{minor}.{patch}"


_CUSTOM_DECODERS: Mapping[FieldKind, Callable[[bytes, int], Any]] = MappingProxyType({
    FieldKind.TEXT: _decode_text,
    FieldKind.RAW: _decode_raw,
    FieldKind.BUTTON: _decode_button,
    FieldKind.DIMMER: _decode_dimmer,
    FieldKind.TIMESTAMP: _decode_timestamp,
    FieldKind.FIRMWARE: _decode_firmware,
    FieldKind.FIRMWARE_SHORT: _decode_firmware_short,
})


def decode_value(spec: FieldSpec, data: bytes, offset: int) -> Any:
    """Decode the value of *spec* starting at *offset* (just past the id)."""
    if spec.kind == FieldKind.NUMBER:
        return decode_number(spec, data, offset)
    return _CUSTOM_DECODERS[spec.kind](data, offset)


def field_length(spec: FieldSpec, data: bytes, offset: int) -> int | None:
    """Bytes occupied by the value at *offset*, or None if *data* is too short.

    Raises ValueError for an entry with neither a fixed size nor a
    length-prefixed kind, whatever *data* holds.
    """
    if spec.size is not None:
        end = offset + spec.size
    elif spec.kind not in LENGTH_PREFIXED_KINDS:
        raise ValueError(f"BTHome spec for {spec.name} is missing 'size'")
    elif offset < len(data):
        end = offset + 1 + data[offset]
    else:
        return None
    if end > len(data):
        return None
    return end - offset


def validate_spec(spec_table: Mapping[int, FieldSpec] = BTHOME_SPEC) -> None:
    """Check every entry of *spec_table*; raise ValueError on the first defect."""
    for oid, spec in spec_table.items():
        if oid != spec.id:
            raise ValueError(f"BTHome spec key 0x{oid:02x} holds id 0x{spec.id:02x}")
        if not 0 <= spec.id <= 0xFF:
            raise ValueError(f"BTHome spec for {spec.name} has id out of range")
        if spec.kind == FieldKind.NUMBER:
            if spec.size is None:
                raise ValueError(f"BTHome spec for {spec.name} is missing 'size'")
            if not 1 <= spec.size <= 4:
                raise ValueError(
                    f"BTHome spec for {spec.name} has unsupported size {spec.size}")
        elif spec.kind not in _CUSTOM_DECODERS:
            raise ValueError(f"BTHome spec for {spec.name} has no decoder for {spec.kind!r}")
        elif spec.kind in LENGTH_PREFIXED_KINDS:
            if spec.size is not None:
                raise ValueError(
                    f"BTHome spec for {spec.name} is length-prefixed but has size {spec.size}")
        elif spec.size is None:
            raise ValueError(f"BTHome spec for {spec.name} is missing 'size'")
        if spec.factor <= 0:
            raise ValueError(f"BTHome spec for {spec.name} has non-positive factor")
