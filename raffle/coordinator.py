from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .interfaces import RandomnessConsumer
from .randomness import Seed, derive_random_words


class UnknownRequest(LookupError):
    def __init__(self, request_id: int) -> None:
        super().__init__("nonexistent request")
        self.request_id = request_id


@dataclass(frozen=True)
class RandomnessRequest:
    request_id: int
    num_words: int
    request_confirmations: int
    callback_gas_limit: int
    requested_at: float


@dataclass(frozen=True)
class Fulfillment:
    request_id: int
    random_words: List[int]
    seed: Optional[str]
    outcome: Any = None


class RandomnessCoordinator:
    """In-process randomness oracle.

    Requests are queued with the consumer that issued them and stay pending
    until :meth:`fulfill_random_words` is called, by a test or by the oracle
    worker through the admin API. Request ids start at 1.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("chainraffle.coordinator")
        self._lock = threading.Lock()
        self._next_id = 1
        self._requests: Dict[int, RandomnessRequest] = {}
        self._consumers: Dict[int, RandomnessConsumer] = {}

    def request_random_words(
        self,
        consumer: RandomnessConsumer,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
    ) -> int:
        with self._lock:
            request_id = self._next_id
            self._next_id += 1
            self._requests[request_id] = RandomnessRequest(
                request_id=request_id,
                num_words=num_words,
                request_confirmations=request_confirmations,
                callback_gas_limit=callback_gas_limit,
                requested_at=time.time(),
            )
            self._consumers[request_id] = consumer
        self._logger.info("Randomness request %s queued (%s words)", request_id, num_words)
        return request_id

    def pending_requests(self) -> List[RandomnessRequest]:
        with self._lock:
            return [self._requests[key] for key in sorted(self._requests)]

    def get_request(self, request_id: int) -> RandomnessRequest:
        with self._lock:
            try:
                return self._requests[request_id]
            except KeyError:
                raise UnknownRequest(request_id) from None

    def fulfill_random_words(
        self,
        request_id: int,
        random_words: Optional[Sequence[int]] = None,
        seed: Optional[Seed] = None,
    ) -> Fulfillment:
        """Deliver randomness for ``request_id`` to the consumer that asked.

        Explicit ``random_words`` win over ``seed``; with neither, a fresh
        32-byte seed is drawn locally. Invalid words or seeds leave the request
        pending.
        """
        request = self.get_request(request_id)

        seed_hex: Optional[str] = None
        if random_words is not None:
            words = [int(word) for word in random_words]
            if len(words) < request.num_words:
                raise ValueError(
                    f"request {request_id} expects {request.num_words} words, got {len(words)}"
                )
        else:
            seed_bytes = secrets.token_bytes(32) if seed is None else seed
            seed_hex = seed_bytes if isinstance(seed_bytes, str) else "0x" + bytes(seed_bytes).hex()
            words = derive_random_words(seed_hex, request_id, request.num_words)

        with self._lock:
            if self._requests.pop(request_id, None) is None:
                raise UnknownRequest(request_id)
            consumer = self._consumers.pop(request_id)

        self._logger.info("Fulfilling randomness request %s", request_id)
        outcome = consumer.on_randomness_fulfilled(request_id, words)
        return Fulfillment(request_id=request_id, random_words=words, seed=seed_hex, outcome=outcome)
