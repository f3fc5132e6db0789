from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PendingRequest:
    request_id: int
    num_words: int
    requested_at: float


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    participant_count: int
    balance: int
