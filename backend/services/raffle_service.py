from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Any, Dict, List, Optional, Sequence

from raffle import (
    InMemoryFunds,
    Raffle,
    RandomnessCoordinator,
    TransferFailed,
    WinnerSelected,
    derive_random_words,
)
from raffle.coordinator import RandomnessRequest
from raffle.events import RaffleEvent
from raffle.interfaces import FundsTransfer
from raffle.types import FailedPayout, RoundOutcome

from ..config import AppSettings, load_settings
from .blockchain import Web3FundsTransfer
from .history import HistoryRepository


class RaffleService:
    """The process-wide raffle together with its oracle and audit trail."""

    def __init__(
        self,
        raffle: Raffle,
        coordinator: RandomnessCoordinator,
        history: HistoryRepository,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.raffle = raffle
        self.coordinator = coordinator
        self.history = history
        self._logger = logger or logging.getLogger("chainraffle.backend")
        raffle.subscribe(self._persist_event)

    def status(self) -> Dict[str, Any]:
        raffle = self.raffle
        pending = raffle.pending_request
        return {
            "state": raffle.state.name,
            "round_number": raffle.round_number,
            "entry_fee": str(raffle.entry_fee),
            "interval": raffle.interval,
            "min_participants": raffle.min_participants,
            "number_of_players": raffle.number_of_players,
            "pooled_balance": str(raffle.pooled_balance),
            "recent_winner": raffle.recent_winner,
            "last_timestamp": raffle.last_timestamp,
            "pending_request_id": pending.request_id if pending else None,
        }

    def pending_requests(self) -> List[RandomnessRequest]:
        return self.coordinator.pending_requests()

    def fulfill(
        self,
        request_id: int,
        random_words: Optional[Sequence[int]] = None,
        seed: Optional[str] = None,
        beacon_round: Optional[int] = None,
    ) -> RoundOutcome:
        if random_words is None and seed is None:
            seed = "0x" + secrets.token_hex(32)
        elif random_words is not None and seed is not None:
            self.coordinator.get_request(request_id)
            if list(random_words) != derive_random_words(seed, request_id, len(random_words)):
                raise ValueError("random_words do not derive from the given seed")
        try:
            fulfillment = self.coordinator.fulfill_random_words(request_id, random_words, seed)
        except TransferFailed as exc:
            if exc.outcome is None:
                raise
            self.history.record_round(exc.outcome, seed=seed, beacon_round=beacon_round)
            self.history.record_event(
                exc.outcome.round_number,
                "PayoutFailed",
                {"winner": exc.outcome.winner, "amount": str(exc.outcome.prize)},
            )
            raise
        outcome: RoundOutcome = fulfillment.outcome
        self.history.record_round(outcome, seed=seed, beacon_round=beacon_round)
        return outcome

    def retry_payout(self, recipient: str) -> FailedPayout:
        payout = self.raffle.retry_payout(recipient)
        self.history.mark_paid(payout.round_number)
        self.history.record_event(
            payout.round_number,
            "PayoutRetried",
            {"winner": payout.recipient, "amount": str(payout.amount)},
        )
        return payout

    def _persist_event(self, event: RaffleEvent) -> None:
        if isinstance(event, WinnerSelected):
            round_number = self.raffle.outcomes[-1].round_number
        else:
            round_number = self.raffle.round_number
        self.history.record_event(round_number, event.name, event.to_dict())


def build_funds(settings: AppSettings) -> FundsTransfer:
    if settings.funds_backend == "web3":
        web3_settings = settings.web3
        return Web3FundsTransfer.from_rpc(
            web3_settings.rpc_url,
            web3_settings.pool_private_key,
            chain_id=web3_settings.chain_id,
            confirmations=web3_settings.confirmations,
        )
    return InMemoryFunds()


@lru_cache(maxsize=1)
def get_raffle_service() -> RaffleService:
    settings = load_settings()
    coordinator = RandomnessCoordinator()
    raffle = Raffle(settings.raffle, coordinator, build_funds(settings))
    return RaffleService(raffle, coordinator, HistoryRepository())
