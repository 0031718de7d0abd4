"""Tests for the numpy reading capture."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "python"))

import numpy as np

from bthome.capture import ReadingCapture
from bthome.decoder import decode_bthome


def frame(packet_id, temp_raw, battery=None):
    """Build a BTHome frame: packet id, temperature (x0.01), optional battery."""
    data = bytes([0x40, 0x00, packet_id, 0x02]) + temp_raw.to_bytes(2, "little", signed=True)
    if battery is not None:
        data += bytes([0x01, battery])
    return data


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_capture_series():
    """series() returns timestamps and values as float64 arrays."""
    print("test_capture_series...", end="")

    cap = ReadingCapture()
    cap.add(frame(1, 2500, 90), 10.0)
    cap.add(frame(2, 2550), 20.0)
    cap.add(frame(3, -125, 89), 30.0)

    assert cap.frames == 3
    assert cap.keys() == ["packetId", "temperature", "battery"]

    ts, vals = cap.series("temperature")
    assert ts.dtype == np.float64 and vals.dtype == np.float64
    np.testing.assert_array_equal(ts, [10.0, 20.0, 30.0])
    np.testing.assert_allclose(vals, [25.0, 25.5, -1.25])

    ts, vals = cap.series("battery")
    np.testing.assert_array_equal(ts, [10.0, 30.0])
    np.testing.assert_array_equal(vals, [90.0, 89.0])

    print(" OK")


def test_capture_time_window():
    print("test_capture_time_window...", end="")

    cap = ReadingCapture()
    for i in range(10):
        cap.add(frame(i, 2000 + i), float(i))

    ts, vals = cap.series("temperature", t0=3.0, t1=5.0)
    np.testing.assert_array_equal(ts, [3.0, 4.0, 5.0])
    np.testing.assert_allclose(vals, [20.03, 20.04, 20.05])

    ts, _ = cap.series("temperature", t0=8.0)
    np.testing.assert_array_equal(ts, [8.0, 9.0])

    ts, vals = cap.series("temperature", t0=100.0)
    assert len(ts) == 0 and len(vals) == 0

    print(" OK")


def test_capture_dedupes_packet_id():
    """Repeated advertisements with one packetId are recorded once."""
    print("test_capture_dedupes_packet_id...", end="")

    cap = ReadingCapture()
    assert cap.add(frame(7, 2500), 1.0) is not None
    assert cap.add(frame(7, 2500), 1.1) is None
    assert cap.add(frame(7, 2500), 1.2) is None
    assert cap.add(frame(8, 2600), 2.0) is not None

    assert cap.frames == 2
    assert cap.duplicates == 2
    ts, _ = cap.series("temperature")
    np.testing.assert_array_equal(ts, [1.0, 2.0])

    cap = ReadingCapture(dedupe_packet_id=False)
    cap.add(frame(7, 2500), 1.0)
    cap.add(frame(7, 2500), 1.1)
    assert cap.frames == 2 and cap.duplicates == 0

    print(" OK")


def test_capture_skips_non_numeric():
    """Events, text and firmware strings are not series."""
    print("test_capture_skips_non_numeric...", end="")

    cap = ReadingCapture()
    data = bytes([0x44, 0x3A, 0x01, 0x53, 0x02]) + b"hi" + bytes([0x01, 0x55])
    result = cap.add(data, 5.0)
    assert result.readings["button"] == "single_press"
    assert cap.keys() == ["battery"]
    assert cap.latest() == {"battery": 85.0}

    print(" OK")


def test_capture_rolling_window():
    print("test_capture_rolling_window...", end="")

    cap = ReadingCapture(max_samples=4)
    for i in range(6):
        cap.add(frame(i, 1000 * i), float(i))

    ts, vals = cap.series("temperature")
    np.testing.assert_array_equal(ts, [2.0, 3.0, 4.0, 5.0])
    np.testing.assert_allclose(vals, [20.0, 30.0, 40.0, 50.0])
    # packetId and temperature each lost two samples
    assert cap.truncated_samples == 4

    print(" OK")


def test_capture_add_decoded_and_clear():
    print("test_capture_add_decoded_and_clear...", end="")

    cap = ReadingCapture()
    cap.add_decoded(decode_bthome(bytes([0x40, 0x01, 0x64])), 1.0)
    assert cap.latest() == {"battery": 100.0}

    cap.clear()
    assert cap.keys() == []
    assert cap.frames == 0

    try:
        cap.series("battery")
    except KeyError:
        pass
    else:
        raise AssertionError("expected KeyError")

    print(" OK")


def test_capture_rejects_bad_window():
    print("test_capture_rejects_bad_window...", end="")

    try:
        ReadingCapture(max_samples=0)
    except ValueError:
        pass
    else:
        raise AssertionError("expected ValueError")

    print(" OK")


if __name__ == "__main__":
    print("bthome capture tests")
    print("====================\n")

    test_capture_series()
    test_capture_time_window()
    test_capture_dedupes_packet_id()
    test_capture_skips_non_numeric()
    test_capture_rolling_window()
    test_capture_add_decoded_and_clear()
    test_capture_rejects_bad_window()

    print("\nAll tests passed.")
