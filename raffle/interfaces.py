from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence


class RandomnessConsumer(Protocol):
    def on_randomness_fulfilled(self, request_id: int, random_words: Sequence[int]) -> Any:
        ...


class RandomnessOracle(Protocol):
    def request_random_words(
        self,
        consumer: RandomnessConsumer,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
    ) -> int:
        ...


class FundsTransfer(Protocol):
    def balance(self) -> int:
        ...

    def collect(self, sender: str, amount: int, reference: Optional[str] = None) -> bool:
        ...

    def transfer(self, recipient: str, amount: int) -> bool:
        ...
