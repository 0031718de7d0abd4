"""Accumulate decoded BTHome frames into numpy time series.

ReadingCapture — caller feeds raw service-data payloads (or decoded
frames) with a timestamp, and queries per-reading series as numpy arrays.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

import numpy as np

from .decoder import DecodedBTHome, decode_bthome

logger = logging.getLogger(__name__)


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ReadingCapture:
    """Per-reading rolling window of (timestamp, value) samples.

    BTHome devices repeat each advertisement several times with the same
    packetId; with ``dedupe_packet_id`` the repeats are skipped.
    """

    DEFAULT_MAX_SAMPLES = 10_000

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES,
                 dedupe_packet_id: bool = True):
        if max_samples < 1:
            raise ValueError(f"max_samples must be >= 1, got {max_samples}")
        self.max_samples = max_samples
        self.dedupe_packet_id = dedupe_packet_id
        self.frames: int = 0
        self.duplicates: int = 0
        self.truncated_samples: int = 0
        self._series: dict[str, deque[tuple[float, float]]] = {}
        self._last_packet_id: int | None = None
        self._truncation_warned = False

    def add(self, data: bytes, timestamp: float) -> DecodedBTHome | None:
        """Decode *data* and record its numeric readings.

        Returns the decoded frame, or None if it was a repeated packet.
        """
        return self.add_decoded(decode_bthome(data), timestamp)

    def add_decoded(self, result: DecodedBTHome,
                    timestamp: float) -> DecodedBTHome | None:
        packet_id = result.readings.get("packetId")
        if self.dedupe_packet_id and packet_id is not None:
            if packet_id == self._last_packet_id:
                self.duplicates += 1
                return None
            self._last_packet_id = packet_id

        self.frames += 1
        for key, value in result.readings.items():
            if not _is_numeric(value):
                continue
            series = self._series.get(key)
            if series is None:
                series = deque(maxlen=self.max_samples)
                self._series[key] = series
            if len(series) == self.max_samples:
                self.truncated_samples += 1
                if not self._truncation_warned:
                    self._truncation_warned = True
                    logger.warning(
                        "Rolling window active: oldest samples are being "
                        "discarded (max_samples=%d)", self.max_samples)
            series.append((float(timestamp), float(value)))
        return result

    def keys(self) -> list[str]:
        return list(self._series)

    def series(self, key: str, t0: float | None = None,
               t1: float | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Return (timestamps, values) for *key*, optionally within [t0, t1]."""
        if key not in self._series:
            raise KeyError(f"no samples for reading {key!r}")
        samples = np.array(self._series[key], dtype=np.float64).reshape(-1, 2)
        ts, vals = samples[:, 0], samples[:, 1]
        mask = np.ones(len(ts), dtype=bool)
        if t0 is not None:
            mask &= ts >= t0
        if t1 is not None:
            mask &= ts <= t1
        return ts[mask], vals[mask]

    def latest(self) -> dict[str, float]:
        """Last recorded value of every reading."""
        return {key: s[-1][1] for key, s in self._series.items() if s}

    def clear(self) -> None:
        self._series.clear()
        self._last_packet_id = None
        self.frames = 0
        self.duplicates = 0
        self.truncated_samples = 0
        self._truncation_warned = False
