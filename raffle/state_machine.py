from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .errors import (
    ContributionNotReceived,
    ExitNotAllowed,
    InsufficientContribution,
    NoFailedPayout,
    RequestNotRecognized,
    RoundNotOpen,
    TransferFailed,
    TransitionNotEligible,
)
from .events import (
    Entered,
    EventHandler,
    Exited,
    RaffleEvent,
    RandomnessRequested,
    WinnerSelected,
)
from .interfaces import FundsTransfer, RandomnessOracle
from .ledger import RaffleLedger
from .randomness import winner_index
from .types import (
    EligibilitySnapshot,
    FailedPayout,
    Participant,
    PendingRequest,
    RaffleConfig,
    RaffleState,
    RoundOutcome,
)

Clock = Callable[[], float]


def _system_clock() -> float:
    return time.time()


class Raffle:
    """Raffle round state machine.

    ``OPEN`` accepts entries and, for under-subscribed rounds, exits. Once
    :meth:`check_eligibility` holds, :meth:`perform_transition` moves to
    ``CALCULATING`` and asks the oracle for randomness; the oracle's answer
    arrives through :meth:`on_randomness_fulfilled`, which pays the winner and
    opens the next round.

    Every mutating operation runs under one lock, so callers on different
    threads observe them as if executed one after the other.
    """

    def __init__(
        self,
        config: RaffleConfig,
        oracle: RandomnessOracle,
        funds: FundsTransfer,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._oracle = oracle
        self._funds = funds
        self._clock = clock or _system_clock
        self._logger = logger or logging.getLogger("chainraffle.core")
        self._lock = threading.RLock()
        self._ledger = RaffleLedger()
        self._state = RaffleState.OPEN
        self._last_timestamp = self._now()
        self._pending: Optional[PendingRequest] = None
        self._recent_winner: Optional[str] = None
        self._round_number = 1
        self._failed_payouts: List[FailedPayout] = []
        self._outcomes: List[RoundOutcome] = []
        self._handlers: List[EventHandler] = []

    # ------------------------------------------------------------------ #
    # Read accessors
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> RaffleConfig:
        return self._config

    @property
    def entry_fee(self) -> int:
        return self._config.entry_fee

    @property
    def interval(self) -> int:
        return self._config.interval

    @property
    def min_participants(self) -> int:
        return self._config.min_participants

    @property
    def num_words(self) -> int:
        return self._config.num_words

    @property
    def request_confirmations(self) -> int:
        return self._config.request_confirmations

    @property
    def callback_gas_limit(self) -> int:
        return self._config.callback_gas_limit

    @property
    def funds(self) -> FundsTransfer:
        return self._funds

    @property
    def state(self) -> RaffleState:
        return self._state

    @property
    def recent_winner(self) -> Optional[str]:
        return self._recent_winner

    @property
    def last_timestamp(self) -> int:
        return self._last_timestamp

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def pending_request(self) -> Optional[PendingRequest]:
        return self._pending

    @property
    def number_of_players(self) -> int:
        return self._ledger.count

    @property
    def failed_payouts(self) -> List[FailedPayout]:
        return list(self._failed_payouts)

    @property
    def outcomes(self) -> List[RoundOutcome]:
        return list(self._outcomes)

    @property
    def pooled_balance(self) -> int:
        """Funds held for the current round.

        Read from the funds holder rather than tracked here; prizes still owed
        from a failed payout are not part of the pool.
        """
        owed = sum(payout.amount for payout in self._failed_payouts)
        return max(int(self._funds.balance()) - owed, 0)

    def get_player(self, position: int) -> str:
        return self._ledger.participant_at(position)

    def player_index(self, participant: str) -> int:
        return self._ledger.index_of(participant)

    def contribution_of(self, participant: str) -> int:
        return self._ledger.contribution_of(participant)

    def players(self) -> List[Participant]:
        return self._ledger.participants()

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    # ------------------------------------------------------------------ #
    # Entry and exit
    # ------------------------------------------------------------------ #

    def enter(self, participant: str, amount: int, reference: Optional[str] = None) -> Participant:
        with self._lock:
            if amount < self._config.entry_fee:
                raise InsufficientContribution(amount, self._config.entry_fee)
            if self._state != RaffleState.OPEN:
                raise RoundNotOpen(self._state)
            if not self._funds.collect(participant, amount, reference):
                raise ContributionNotReceived(participant, amount, reference)
            record = self._ledger.enter(participant, amount)
            self._logger.info(
                "%s entered round %s with %s (total %s)",
                participant,
                self._round_number,
                amount,
                record.contribution,
            )
            self._emit(Entered(participant=participant))
            return record

    def exit(self, participant: str) -> int:
        """Refund a participant of an under-subscribed round.

        Only possible while fewer than ``min_participants`` have entered; once
        the round can be drawn, contributions stay locked until the draw.
        """
        with self._lock:
            if self._state != RaffleState.OPEN:
                raise RoundNotOpen(self._state)
            if self._elapsed() < self._config.interval:
                raise ExitNotAllowed(participant, "interval has not elapsed")
            contribution = self._ledger.contribution_of(participant)
            if contribution <= 0:
                raise ExitNotAllowed(participant, "no contribution recorded")
            if self._ledger.count >= self._config.min_participants:
                raise ExitNotAllowed(participant, "round has enough participants to be drawn")

            removed = self._ledger.remove(participant)
            if not self._send(participant, contribution):
                self._ledger.reinstate(removed)
                self._logger.error("Refund of %s to %s failed; entry restored", contribution, participant)
                raise TransferFailed(participant, contribution)

            self._logger.info("%s exited round %s, refunded %s", participant, self._round_number, contribution)
            self._emit(Exited(participant=participant))
            return contribution

    # ------------------------------------------------------------------ #
    # Draw protocol
    # ------------------------------------------------------------------ #

    def eligibility_snapshot(self) -> EligibilitySnapshot:
        return EligibilitySnapshot(
            state=self._state,
            elapsed=self._elapsed(),
            participant_count=self._ledger.count,
            balance=self.pooled_balance,
            interval=self._config.interval,
            min_participants=self._config.min_participants,
        )

    def check_eligibility(self) -> bool:
        return self.eligibility_snapshot().eligible

    def perform_transition(self) -> int:
        with self._lock:
            snapshot = self.eligibility_snapshot()
            if not snapshot.eligible:
                raise TransitionNotEligible(snapshot.balance, snapshot.participant_count, snapshot.state)

            self._state = RaffleState.CALCULATING
            try:
                request_id = self._oracle.request_random_words(
                    self,
                    self._config.request_confirmations,
                    self._config.callback_gas_limit,
                    self._config.num_words,
                )
            except Exception:
                self._state = RaffleState.OPEN
                raise
            self._pending = PendingRequest(
                request_id=int(request_id),
                round_number=self._round_number,
                participant_count=snapshot.participant_count,
                requested_at=self._now(),
            )
            self._logger.info(
                "Round %s calculating; randomness request %s issued for %s participants",
                self._round_number,
                request_id,
                snapshot.participant_count,
            )
            self._emit(RandomnessRequested(request_id=int(request_id)))
            return int(request_id)

    def on_randomness_fulfilled(self, request_id: int, random_words: Sequence[int]) -> RoundOutcome:
        with self._lock:
            pending = self._pending
            if pending is None or pending.request_id != int(request_id):
                raise RequestNotRecognized(int(request_id), pending.request_id if pending else None)
            if not random_words:
                raise ValueError("at least one random word is required")

            random_word = int(random_words[0])
            index = winner_index(random_word, pending.participant_count)
            winner = self._ledger.participant_at(index)
            prize = self.pooled_balance
            finalized_at = self._now()

            # State is committed before any funds move.
            self._pending = None
            self._state = RaffleState.OPEN
            self._last_timestamp = finalized_at
            self._recent_winner = winner
            self._ledger.reset()
            self._round_number += 1

            outcome = RoundOutcome(
                round_number=pending.round_number,
                request_id=pending.request_id,
                random_word=random_word,
                participant_count=pending.participant_count,
                winner_index=index,
                winner=winner,
                prize=prize,
                finalized_at=finalized_at,
            )
            if not self._send(winner, prize):
                unpaid = replace(outcome, paid=False, error="transfer failed")
                self._failed_payouts.append(FailedPayout(winner, prize, pending.round_number))
                self._outcomes.append(unpaid)
                self._logger.error(
                    "Payout of %s to winner %s of round %s failed; manual intervention required",
                    prize,
                    winner,
                    pending.round_number,
                )
                raise TransferFailed(winner, prize, outcome=unpaid)

            self._outcomes.append(outcome)
            self._logger.info(
                "Round %s winner %s (index %s of %s) paid %s",
                pending.round_number,
                winner,
                index,
                pending.participant_count,
                prize,
            )
            self._emit(WinnerSelected(winner=winner))
            return outcome

    def retry_payout(self, recipient: str) -> FailedPayout:
        with self._lock:
            for position, payout in enumerate(self._failed_payouts):
                if payout.recipient == recipient:
                    break
            else:
                raise NoFailedPayout(recipient)
            if not self._send(payout.recipient, payout.amount):
                raise TransferFailed(payout.recipient, payout.amount)
            del self._failed_payouts[position]
            self._logger.info(
                "Unpaid prize of %s for round %s delivered to %s",
                payout.amount,
                payout.round_number,
                payout.recipient,
            )
            return payout

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _now(self) -> int:
        return int(self._clock())

    def _elapsed(self) -> int:
        return self._now() - self._last_timestamp

    def _send(self, recipient: str, amount: int) -> bool:
        try:
            return bool(self._funds.transfer(recipient, amount))
        except Exception:
            self._logger.exception("Transfer of %s to %s raised", amount, recipient)
            return False

    def _emit(self, event: RaffleEvent) -> None:
        # Emitted after the state change; a failing subscriber cannot undo it.
        self._logger.debug("event %s %s", event.name, event.to_dict())
        for handler in self._handlers:
            try:
                handler(event)
            except Exception:
                self._logger.exception("Subscriber failed to handle %s", event.name)
