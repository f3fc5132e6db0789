from __future__ import annotations

import asyncio
import json
import logging
import pathlib
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from raffle.randomness import derive_random_words

from .config import OracleSettings
from .datasource import EntropySource
from .raffle_client import RaffleApiError
from .types import Eligibility, PendingRequest


class RaffleClientProtocol(Protocol):
    async def check_eligibility(self) -> Eligibility:
        ...

    async def perform_upkeep(self) -> int:
        ...

    async def get_pending_requests(self) -> List[PendingRequest]:
        ...

    async def fulfill(
        self, request_id: int, random_words: Sequence[int], seed: str, beacon_round: int
    ) -> Dict[str, Any]:
        ...


@dataclass
class SchedulerResult:
    request_id: int
    beacon_round: int
    winner: Optional[str]
    paid: bool = True


class OracleStateStore:
    """Very small persistence layer to avoid fulfilling the same request twice."""

    def __init__(self, path: str) -> None:
        self._path = pathlib.Path(path)

    def load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, request_key: str, beacon_round: int) -> None:
        payload = {"last_request_key": request_key, "last_beacon_round": beacon_round}
        self._path.write_text(json.dumps(payload), encoding="utf-8")


def _request_key(request: PendingRequest) -> str:
    # Request ids restart with the backend; the request time tells them apart.
    return f"{request.request_id}:{request.requested_at}"


class OracleScheduler:
    def __init__(
        self,
        settings: OracleSettings,
        datasource: EntropySource,
        client: RaffleClientProtocol,
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._settings = settings
        self._datasource = datasource
        self._client = client
        self._state = OracleStateStore(settings.state_file)
        stored = self._state.load()
        self._last_request_key: Optional[str] = stored.get("last_request_key")
        self._last_beacon_round: Optional[int] = stored.get("last_beacon_round")
        self._logger = logger or logging.getLogger("chainraffle.oracle")
        self._clock = clock or time.time

    async def run_forever(self) -> None:
        interval = self._settings.poll_interval_seconds
        self._logger.info("Oracle loop started; poll interval=%s", interval)
        while True:
            try:
                result = await self._run_iteration()
                if result is not None and self._settings.submit_only_once:
                    self._logger.info("Submit-once flag set; exiting loop.")
                    return
            except Exception as exc:
                self._logger.exception("Oracle iteration failed: %s", exc)
            await asyncio.sleep(interval)

    async def run_once(self) -> Optional[SchedulerResult]:
        try:
            return await self._run_iteration()
        finally:
            await self._datasource.close()

    async def _run_iteration(self) -> Optional[SchedulerResult]:
        if self._settings.perform_upkeep:
            await self._attempt_upkeep()
        return await self._attempt_fulfillment()

    async def _attempt_upkeep(self) -> Optional[int]:
        eligibility = await self._client.check_eligibility()
        if not eligibility.eligible:
            self._logger.debug(
                "Upkeep not needed (participants=%s, balance=%s).",
                eligibility.participant_count,
                eligibility.balance,
            )
            return None
        request_id = await self._client.perform_upkeep()
        self._logger.info("Upkeep performed; randomness request %s issued.", request_id)
        return request_id

    async def _attempt_fulfillment(self) -> Optional[SchedulerResult]:
        pending = await self._client.get_pending_requests()
        if not pending:
            self._logger.debug("No pending randomness requests.")
            return None
        self._warn_stale(pending)

        request = min(pending, key=lambda item: item.request_id)
        key = _request_key(request)
        if key == self._last_request_key:
            self._logger.debug("Request %s already fulfilled; skipping.", request.request_id)
            return None

        sample = await self._datasource.fetch_latest()
        if self._last_beacon_round is not None and sample.round <= self._last_beacon_round:
            self._logger.info(
                "Beacon round %s already used; waiting for a fresh round.", sample.round
            )
            return None

        words = derive_random_words(sample.seed_hex, request.request_id, request.num_words)
        self._logger.info(
            "Fulfilling request %s with beacon round %s", request.request_id, sample.round
        )
        paid = True
        winner: Optional[str] = None
        try:
            response = await self._client.fulfill(
                request.request_id, words, sample.seed_hex, sample.round
            )
            winner = response.get("winner")
        except RaffleApiError as exc:
            if exc.status_code != 502:
                raise
            # The draw happened; only the payout needs an operator.
            paid = False
            if isinstance(exc.payload, dict):
                winner = exc.payload.get("winner")
            self._logger.error(
                "Request %s fulfilled but payout failed; manual intervention required: %s",
                request.request_id,
                exc.payload,
            )

        self._last_request_key = key
        self._last_beacon_round = sample.round
        self._state.save(key, sample.round)
        if paid:
            self._logger.info("Request %s fulfilled; winner %s", request.request_id, winner)

        return SchedulerResult(
            request_id=request.request_id,
            beacon_round=sample.round,
            winner=winner,
            paid=paid,
        )

    def _warn_stale(self, pending: Sequence[PendingRequest]) -> None:
        now = self._clock()
        for request in pending:
            age = now - request.requested_at
            if age > self._settings.stale_request_seconds:
                self._logger.warning(
                    "Randomness request %s pending for %.0f seconds; raffle is stuck calculating.",
                    request.request_id,
                    age,
                )
