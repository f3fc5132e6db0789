from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict


@dataclass(frozen=True)
class RaffleEvent:
    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Entered(RaffleEvent):
    participant: str


@dataclass(frozen=True)
class Exited(RaffleEvent):
    participant: str


@dataclass(frozen=True)
class RandomnessRequested(RaffleEvent):
    request_id: int


@dataclass(frozen=True)
class WinnerSelected(RaffleEvent):
    winner: str


EventHandler = Callable[[RaffleEvent], None]
