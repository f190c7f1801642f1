"""Time-ordered string IDs for markets, orders and trades.

IDs are 64-bit snowflakes rendered as decimal strings, optionally behind a
short type prefix (``mkt_``, ``ord_``, ``trd_``). Within one process they
are strictly increasing, so ordering by id follows creation order.
"""

import threading
import time
from datetime import datetime, timezone

EPOCH_MS = 1_700_000_000_000
_NODE_BITS = 10
_SEQ_BITS = 12
_SEQ_MASK = (1 << _SEQ_BITS) - 1


class SnowflakeIdGenerator:
    """41 bits of milliseconds since EPOCH_MS, 10 bits node id, 12 bits sequence."""

    def __init__(self, node_id: int = 0) -> None:
        if not 0 <= node_id < (1 << _NODE_BITS):
            raise ValueError(f"node_id must be 0-{(1 << _NODE_BITS) - 1}")
        self._node_id = node_id
        self._seq = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_int(self) -> int:
        with self._lock:
            now_ms = int(time.time() * 1000)
            if now_ms < self._last_ms:
                # clock stepped back: keep issuing on the last seen millisecond
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._seq = (self._seq + 1) & _SEQ_MASK
                if self._seq == 0:
                    while now_ms <= self._last_ms:
                        now_ms = int(time.time() * 1000)
            else:
                self._seq = 0
            self._last_ms = now_ms
            return (
                ((now_ms - EPOCH_MS) << (_NODE_BITS + _SEQ_BITS))
                | (self._node_id << _SEQ_BITS)
                | self._seq
            )


_default_generator = SnowflakeIdGenerator()


def generate_id(prefix: str | None = None) -> str:
    raw = str(_default_generator.next_int())
    return f"{prefix}_{raw}" if prefix else raw


def id_created_at(value: str) -> datetime:
    """Recover the creation time embedded in an id produced by generate_id."""
    raw = int(value.rsplit("_", 1)[-1])
    ms = (raw >> (_NODE_BITS + _SEQ_BITS)) + EPOCH_MS
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
