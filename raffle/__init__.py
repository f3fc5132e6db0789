from .coordinator import RandomnessCoordinator, UnknownRequest
from .errors import (
    ContributionNotReceived,
    ExitNotAllowed,
    InsufficientContribution,
    NoFailedPayout,
    RaffleError,
    RequestNotRecognized,
    RoundNotOpen,
    TransferFailed,
    TransitionNotEligible,
)
from .events import Entered, Exited, RaffleEvent, RandomnessRequested, WinnerSelected
from .funds import InMemoryFunds
from .ledger import RaffleLedger
from .randomness import derive_random_words, winner_index
from .state_machine import Raffle
from .types import ABSENT_INDEX, RaffleConfig, RaffleState

__all__ = [
    "ABSENT_INDEX",
    "ContributionNotReceived",
    "Entered",
    "ExitNotAllowed",
    "Exited",
    "InMemoryFunds",
    "InsufficientContribution",
    "NoFailedPayout",
    "Raffle",
    "RaffleConfig",
    "RaffleError",
    "RaffleEvent",
    "RaffleLedger",
    "RaffleState",
    "RandomnessCoordinator",
    "RandomnessRequested",
    "RequestNotRecognized",
    "RoundNotOpen",
    "TransferFailed",
    "TransitionNotEligible",
    "UnknownRequest",
    "WinnerSelected",
    "derive_random_words",
    "winner_index",
]
