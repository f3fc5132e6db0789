from __future__ import annotations

from raffle import InMemoryFunds, Raffle, RaffleConfig, RandomnessCoordinator


class FakeClock:
    def __init__(self, now: int = 1_700_000_000) -> None:
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_raffle(entry_fee: int = 1, interval: int = 30, min_participants: int = 3, **overrides):
    clock = overrides.pop("clock", None) or FakeClock()
    funds = overrides.pop("funds", None) or InMemoryFunds()
    coordinator = overrides.pop("coordinator", None) or RandomnessCoordinator()
    config = RaffleConfig(
        entry_fee=entry_fee,
        interval=interval,
        min_participants=min_participants,
        **overrides,
    )
    raffle = Raffle(config, coordinator, funds, clock=clock)
    return raffle, coordinator, funds, clock
