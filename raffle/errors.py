from __future__ import annotations

from typing import Optional

from .types import RaffleState, RoundOutcome


class RaffleError(Exception):
    """Base class for every failure surfaced by the raffle core."""


class InsufficientContribution(RaffleError):
    def __init__(self, amount: int, entry_fee: int) -> None:
        super().__init__(f"Contribution {amount} is below the entry fee {entry_fee}")
        self.amount = amount
        self.entry_fee = entry_fee


class RoundNotOpen(RaffleError):
    def __init__(self, state: RaffleState) -> None:
        super().__init__(f"Raffle is not open (state={state.name})")
        self.state = state


class TransitionNotEligible(RaffleError):
    def __init__(self, balance: int, participant_count: int, state: RaffleState) -> None:
        super().__init__(
            f"Raffle is not eligible for a draw "
            f"(balance={balance}, participants={participant_count}, state={state.name})"
        )
        self.balance = balance
        self.participant_count = participant_count
        self.state = state


class RequestNotRecognized(RaffleError):
    def __init__(self, request_id: int, pending_id: Optional[int] = None) -> None:
        super().__init__(f"Randomness request {request_id} is not pending")
        self.request_id = request_id
        self.pending_id = pending_id


class TransferFailed(RaffleError):
    """A refund or payout did not go through.

    ``outcome`` is set when the failed transfer was a round's prize; the round
    itself is already finalized.
    """

    def __init__(self, recipient: str, amount: int, outcome: Optional[RoundOutcome] = None) -> None:
        super().__init__(f"Transfer of {amount} to {recipient} failed")
        self.recipient = recipient
        self.amount = amount
        self.outcome = outcome


class ExitNotAllowed(RaffleError):
    def __init__(self, participant: str, reason: str) -> None:
        super().__init__(f"{participant} cannot exit: {reason}")
        self.participant = participant
        self.reason = reason


class ContributionNotReceived(RaffleError):
    def __init__(self, participant: str, amount: int, reference: Optional[str] = None) -> None:
        super().__init__(f"Payment of {amount} from {participant} could not be confirmed")
        self.participant = participant
        self.amount = amount
        self.reference = reference


class NoFailedPayout(RaffleError):
    def __init__(self, recipient: str) -> None:
        super().__init__(f"No unpaid prize recorded for {recipient}")
        self.recipient = recipient
