"""bthome command-line tool."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterator

from .capture import ReadingCapture
from .decoder import DecodedBTHome, decode_bthome
from .manufacturer import decode_shelly_manufacturer_data
from .spec import BTHOME_SPEC

logger = logging.getLogger(__name__)


def _parse_hex(text: str) -> bytes:
    cleaned = "".join(text.split())
    if cleaned.lower().startswith("0x"):
        cleaned = cleaned[2:]
    return bytes.fromhex(cleaned)


def _format_value(value: object) -> str:
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _format_frame(result: DecodedBTHome) -> str:
    flags = []
    if result.encrypted:
        flags.append("encrypted")
    if result.trigger:
        flags.append("trigger")
    lines = [f"BTHome v{result.version}"
             + (f" ({', '.join(flags)})" if flags else "")]
    for key, value in result.readings.items():
        lines.append(f"  {key:24s} {_format_value(value)}")
    for tail in result.unknown:
        lines.append(f"  unknown: {tail}")
    return "\n".join(lines)


def read_frames(path: str) -> Iterator[tuple[float, bytes]]:
    """Yield (timestamp, payload) from a frame file.

    One frame per line: ``[timestamp] hex``.  Lines without a timestamp
    use the line number.  Blank lines and ``#`` comments are skipped.
    """
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            parts = line.split()
            try:
                if len(parts) == 1:
                    ts, data = float(lineno), _parse_hex(parts[0])
                elif len(parts) == 2:
                    ts, data = float(parts[0]), _parse_hex(parts[1])
                else:
                    raise ValueError("expected '[timestamp] hex'")
            except ValueError as e:
                logger.warning("%s:%d: skipping line: %s", path, lineno, e)
                continue
            yield ts, data


def cmd_decode(args: argparse.Namespace) -> int:
    """Decode one BTHome service-data payload."""
    try:
        data = _parse_hex(args.hex)
        result = decode_bthome(data)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(result.to_dict()))
    else:
        print(_format_frame(result))
    return 0


def cmd_vendor(args: argparse.Namespace) -> int:
    """Decode Shelly manufacturer data."""
    data = decode_shelly_manufacturer_data(args.hex)
    if args.json:
        print(json.dumps(data.to_dict() if data else None))
        return 0
    if data is None:
        print("not Shelly manufacturer data")
        return 0
    for key, value in data.to_dict().items():
        print(f"{key:18s} {_format_value(value)}")
    return 0


def cmd_spec(args: argparse.Namespace) -> int:
    """Print the BTHome object table."""
    for spec in sorted(BTHOME_SPEC.values(), key=lambda s: s.id):
        size = "len" if spec.size is None else str(spec.size)
        sign = "s" if spec.signed else "u"
        print(f"0x{spec.id:02x}  {spec.name:24s} size={size:>3s} {sign} "
              f"factor={spec.factor:<6g} {spec.kind.name}")
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """Decode every frame of a frame file."""
    for ts, data in read_frames(args.file):
        try:
            result = decode_bthome(data)
        except ValueError as e:
            logger.warning("frame at %.3f: %s", ts, e)
            continue
        if args.json:
            print(json.dumps({"timestamp": ts, **result.to_dict()}))
        else:
            print(f"[{ts:14.3f}] {_format_frame(result)}")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Summarise the readings of a frame file."""
    capture = ReadingCapture(dedupe_packet_id=not args.keep_duplicates)
    for ts, data in read_frames(args.file):
        try:
            capture.add(data, ts)
        except ValueError as e:
            logger.warning("frame at %.3f: %s", ts, e)

    print(f"File:       {args.file}")
    print(f"Frames:     {capture.frames:,}")
    print(f"Duplicates: {capture.duplicates:,}")

    keys = capture.keys()
    print(f"\nReadings ({len(keys)}):")
    print(f"  {'Name':<24s}  {'Samples':>8s}  {'Min':>10s}  {'Max':>10s}  {'Last':>10s}")
    print(f"  {'-' * 24}  {'-' * 8}  {'-' * 10}  {'-' * 10}  {'-' * 10}")
    for key in keys:
        _, vals = capture.series(key)
        print(f"  {key:<24s}  {len(vals):8,}  {vals.min():10g}  "
              f"{vals.max():10g}  {vals[-1]:10g}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="bthome", description="BTHome v2 decoder tool")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # decode
    p_decode = sub.add_parser("decode", help="Decode BTHome service data")
    p_decode.add_argument("hex", help="Payload as hex, header byte included")
    p_decode.add_argument("--json", action="store_true", help="Print JSON")

    # vendor
    p_vendor = sub.add_parser("vendor", help="Decode Shelly manufacturer data")
    p_vendor.add_argument("hex", help="Manufacturer data as hex")
    p_vendor.add_argument("--json", action="store_true", help="Print JSON")

    # spec
    sub.add_parser("spec", help="Show the BTHome object table")

    # dump
    p_dump = sub.add_parser("dump", help="Decode every frame in a frame file")
    p_dump.add_argument("file", help="Frame file, one '[timestamp] hex' per line")
    p_dump.add_argument("--json", action="store_true", help="Print JSON lines")

    # info
    p_info = sub.add_parser("info", help="Show summary info about a frame file")
    p_info.add_argument("file", help="Frame file, one '[timestamp] hex' per line")
    p_info.add_argument("--keep-duplicates", action="store_true",
                        help="Count repeated packet ids as separate frames")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(name)s: %(message)s")

    commands = {
        "decode": cmd_decode,
        "vendor": cmd_vendor,
        "spec": cmd_spec,
        "dump": cmd_dump,
        "info": cmd_info,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
