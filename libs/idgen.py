"""Time-ordered 64-bit primary keys.

Layout: 41 bits of milliseconds since ``EPOCH_MS``, 10 bits of node id and a
12-bit per-millisecond sequence. Web and worker processes that share a
database should run with distinct ``SNOWFLAKE_NODE_ID`` values.
"""

from __future__ import annotations

import os
import threading
import time
from datetime import datetime, timezone
from typing import NamedTuple

EPOCH_MS = 1_704_067_200_000  # 2024-01-01T00:00:00Z
NODE_BITS = 10
SEQUENCE_BITS = 12
MAX_NODE_ID = (1 << NODE_BITS) - 1
SEQUENCE_MASK = (1 << SEQUENCE_BITS) - 1


class DecodedId(NamedTuple):
    created_at: datetime
    node_id: int
    sequence: int


class SnowflakeGenerator:
    def __init__(self, node_id: int) -> None:
        if not 0 <= node_id <= MAX_NODE_ID:
            raise ValueError(f"node_id must be between 0 and {MAX_NODE_ID}")
        self.node_id = node_id
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    @staticmethod
    def _now_ms() -> int:
        return time.time_ns() // 1_000_000

    def _until_after(self, last_ms: int) -> int:
        now = self._now_ms()
        while now <= last_ms:
            time.sleep(0.0001)
            now = self._now_ms()
        return now

    def next_id(self) -> int:
        with self._lock:
            now = self._now_ms()
            if now < self._last_ms:
                now = self._until_after(self._last_ms)
            if now == self._last_ms:
                self._sequence = (self._sequence + 1) & SEQUENCE_MASK
                if self._sequence == 0:
                    now = self._until_after(now)
            else:
                self._sequence = 0
            self._last_ms = now
            return ((now - EPOCH_MS) << (NODE_BITS + SEQUENCE_BITS)) | (self.node_id << SEQUENCE_BITS) | self._sequence


def _node_from_env() -> int:
    raw = os.getenv("SNOWFLAKE_NODE_ID", "1").strip()
    return int(raw) if raw.isdigit() else 1


_generator = SnowflakeGenerator(_node_from_env())


def generate_id() -> int:
    return _generator.next_id()


def decode_id(value: int) -> DecodedId:
    millis = (value >> (NODE_BITS + SEQUENCE_BITS)) + EPOCH_MS
    return DecodedId(
        created_at=datetime.fromtimestamp(millis / 1000, tz=timezone.utc),
        node_id=(value >> SEQUENCE_BITS) & MAX_NODE_ID,
        sequence=value & SEQUENCE_MASK,
    )
