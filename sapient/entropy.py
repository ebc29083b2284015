"""Cryptographically secure random source used for keys and nonces."""

from __future__ import annotations

import os
from typing import Protocol


class RandomSource(Protocol):
    """Anything that returns ``n`` unpredictable bytes."""

    def __call__(self, n: int) -> bytes:
        ...


class SystemRandom:
    """Process-wide source backed by the operating system CSPRNG."""

    def __call__(self, n: int) -> bytes:
        return os.urandom(n)


SYSTEM_RANDOM: RandomSource = SystemRandom()


def random_bytes(n: int, source: RandomSource | None = None) -> bytes:
    data = (source or SYSTEM_RANDOM)(n)
    if len(data) != n:
        raise ValueError(f"random source returned {len(data)} bytes, expected {n}")
    return data
