from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _normalise_address(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("participant must not be empty.")
    if len(value) > 64:
        raise ValueError("participant must be at most 64 characters.")
    return value


class EnterRequest(BaseModel):
    participant: str = Field(..., description="Address of the entrant.")
    amount: int = Field(..., description="Contribution in the smallest currency unit.")
    tx_hash: Optional[str] = Field(None, description="Payment transaction, required for on-chain funds.")

    @field_validator("participant")
    @classmethod
    def validate_participant(cls, value: str) -> str:
        return _normalise_address(value)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: int) -> int:
        if value < 0:
            raise ValueError("amount must not be negative.")
        return value


class EnterResponse(BaseModel):
    participant: str
    index: int
    contribution: str
    round_number: int


class ExitRequest(BaseModel):
    participant: str

    @field_validator("participant")
    @classmethod
    def validate_participant(cls, value: str) -> str:
        return _normalise_address(value)


class ExitResponse(BaseModel):
    participant: str
    refunded: str


class RaffleStatusResponse(BaseModel):
    state: str
    round_number: int
    entry_fee: str
    interval: int
    min_participants: int
    number_of_players: int
    pooled_balance: str
    recent_winner: Optional[str] = None
    last_timestamp: int
    pending_request_id: Optional[int] = None


class EligibilityResponse(BaseModel):
    eligible: bool
    state: str
    elapsed: int
    interval: int
    participant_count: int
    min_participants: int
    balance: str


class FulfillRequest(BaseModel):
    random_words: Optional[List[int]] = None
    seed: Optional[str] = Field(None, description="Hex encoded beacon output the words derive from.")
    beacon_round: Optional[int] = None

    @field_validator("random_words")
    @classmethod
    def validate_words(cls, value: Optional[List[int]]) -> Optional[List[int]]:
        if value is None:
            return value
        if len(value) == 0:
            raise ValueError("random_words must not be empty.")
        for word in value:
            if word < 0 or word >= 2**256:
                raise ValueError("random words must be uint256 values.")
        return value

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        text = value[2:] if value.startswith("0x") else value
        if len(text) != 64:
            raise ValueError("seed must be 32 bytes of hex.")
        try:
            bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError("seed must be hex encoded.") from exc
        return "0x" + text.lower()


class RetryPayoutRequest(BaseModel):
    recipient: str

    @field_validator("recipient")
    @classmethod
    def validate_recipient(cls, value: str) -> str:
        return _normalise_address(value)


class PendingRequestResponse(BaseModel):
    request_id: int
    num_words: int
    request_confirmations: int
    callback_gas_limit: int
    requested_at: float
