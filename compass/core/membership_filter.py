"""
Scalable membership filter.

A stack of Bloom filter layers used to answer "definitely absent" for bulk
existence checks before touching the database. A False answer is
authoritative; a True answer only means "possibly present, verify".

Inserts go into the newest layer. Once that layer has absorbed its designed
capacity a new layer is appended with the same error rate and a larger
capacity. Layers are never merged or removed and there is no delete.
"""

from __future__ import annotations

import hashlib
import math
import threading
from typing import Iterable

import structlog

logger = structlog.get_logger()


def _hash_pair(item: str) -> tuple[int, int]:
    digest = hashlib.blake2b(item.encode("utf-8"), digest_size=16).digest()
    h1 = int.from_bytes(digest[:8], "little")
    # Odd second hash so successive bit positions never collapse onto one bit
    h2 = int.from_bytes(digest[8:], "little") | 1
    return h1, h2


class BloomLayer:
    """Fixed-size Bloom filter sized for ``capacity`` items at ``error_rate``."""

    def __init__(self, capacity: int, error_rate: float) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if not 0 < error_rate < 1:
            raise ValueError("error_rate must be between 0 and 1")

        self.capacity = capacity
        self.error_rate = error_rate
        self.size = max(8, math.ceil(-capacity * math.log(error_rate) / (math.log(2) ** 2)))
        self.hash_count = max(1, round(self.size / capacity * math.log(2)))
        self.count = 0
        self._bits = bytearray((self.size + 7) // 8)

    def _positions(self, hashes: tuple[int, int]) -> list[int]:
        h1, h2 = hashes
        return [(h1 + i * h2) % self.size for i in range(self.hash_count)]

    def contains(self, hashes: tuple[int, int]) -> bool:
        bits = self._bits
        return all(bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(hashes))

    def add(self, hashes: tuple[int, int]) -> None:
        bits = self._bits
        for pos in self._positions(hashes):
            bits[pos >> 3] |= 1 << (pos & 7)
        self.count += 1

    @property
    def is_full(self) -> bool:
        return self.count >= self.capacity


class ScalableMembershipFilter:
    def __init__(
        self,
        initial_capacity: int = 10_000,
        error_rate: float = 0.01,
        growth_factor: int = 2,
        name: str = "membership",
    ) -> None:
        if growth_factor < 1:
            raise ValueError("growth_factor must be at least 1")

        self.name = name
        self.error_rate = error_rate
        self.growth_factor = growth_factor
        self._layers: list[BloomLayer] = [BloomLayer(initial_capacity, error_rate)]
        self._lock = threading.Lock()

    @property
    def layer_count(self) -> int:
        return len(self._layers)

    @property
    def capacity(self) -> int:
        return sum(layer.capacity for layer in self._layers)

    def __len__(self) -> int:
        return sum(layer.count for layer in self._layers)

    def __contains__(self, item: str) -> bool:
        return self.may_contain(item)

    def may_contain(self, item: str) -> bool:
        hashes = _hash_pair(item)
        # Snapshot of the layer list; a layer appended concurrently is simply not consulted
        return any(layer.contains(hashes) for layer in tuple(self._layers))

    def insert(self, item: str) -> None:
        hashes = _hash_pair(item)
        with self._lock:
            # Already reported present: inserting again would only burn capacity
            if any(layer.contains(hashes) for layer in self._layers):
                return

            current = self._layers[-1]
            if current.is_full:
                current = BloomLayer(current.capacity * self.growth_factor, self.error_rate)
                self._layers.append(current)
                logger.info(
                    "Membership filter grew a new layer",
                    filter=self.name,
                    layers=len(self._layers),
                    layer_capacity=current.capacity,
                )
            current.add(hashes)

    def insert_many(self, items: Iterable[str]) -> int:
        inserted = 0
        for item in items:
            self.insert(item)
            inserted += 1
        return inserted
