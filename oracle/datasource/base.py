from __future__ import annotations

import abc
import datetime as dt
from dataclasses import dataclass


@dataclass(frozen=True)
class EntropySample:
    """Normalized beacon output returned by entropy sources."""

    round: int
    randomness: bytes
    fetched_at: dt.datetime

    @property
    def seed_hex(self) -> str:
        return "0x" + self.randomness.hex()


class EntropySource(abc.ABC):
    """Abstract randomness beacon."""

    @abc.abstractmethod
    async def fetch_latest(self) -> EntropySample:
        """Return the newest published beacon value.

        Implementations should raise `RuntimeError` or `ValueError` if
        remote data is unavailable or validation fails.
        """

    async def close(self) -> None:
        """Optional hook for connectors that require cleanup."""
        return None
