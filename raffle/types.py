from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

ABSENT_INDEX = -1


class RaffleState(IntEnum):
    OPEN = 0
    CALCULATING = 1


@dataclass
class Participant:
    address: str
    contribution: int = 0
    index: int = ABSENT_INDEX


@dataclass(frozen=True)
class RaffleConfig:
    """Round parameters, fixed once the raffle is constructed."""

    entry_fee: int
    interval: int
    min_participants: int = 3
    request_confirmations: int = 3
    callback_gas_limit: int = 500000
    num_words: int = 1

    def __post_init__(self) -> None:
        if self.entry_fee <= 0:
            raise ValueError("entry_fee must be positive")
        if self.interval < 0:
            raise ValueError("interval must not be negative")
        if self.min_participants < 1:
            raise ValueError("min_participants must be at least 1")
        if self.request_confirmations < 0:
            raise ValueError("request_confirmations must not be negative")
        if self.callback_gas_limit <= 0:
            raise ValueError("callback_gas_limit must be positive")
        if self.num_words < 1:
            raise ValueError("num_words must be at least 1")


@dataclass(frozen=True)
class PendingRequest:
    request_id: int
    round_number: int
    participant_count: int
    requested_at: int


@dataclass(frozen=True)
class EligibilitySnapshot:
    state: RaffleState
    elapsed: int
    participant_count: int
    balance: int
    interval: int
    min_participants: int

    @property
    def eligible(self) -> bool:
        return (
            self.state == RaffleState.OPEN
            and self.elapsed >= self.interval
            and self.participant_count >= self.min_participants
            and self.balance > 0
        )


@dataclass(frozen=True)
class FailedPayout:
    recipient: str
    amount: int
    round_number: int


@dataclass(frozen=True)
class RoundOutcome:
    """Everything needed to re-check a finalized draw."""

    round_number: int
    request_id: int
    random_word: int
    participant_count: int
    winner_index: int
    winner: str
    prize: int
    finalized_at: int
    paid: bool = True
    error: Optional[str] = None
