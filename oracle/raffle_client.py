from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import requests

from .config import OracleSettings
from .types import Eligibility, PendingRequest


class RaffleApiError(RuntimeError):
    def __init__(self, status_code: int, payload: Any) -> None:
        super().__init__(f"Raffle API responded {status_code}: {payload}")
        self.status_code = status_code
        self.payload = payload


class RaffleClient:
    """Wrapper around the raffle backend HTTP API."""

    def __init__(self, settings: OracleSettings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        if settings.admin_token:
            self._session.headers["X-Admin-Token"] = settings.admin_token

    async def check_eligibility(self) -> Eligibility:
        return await asyncio.to_thread(self._sync_check_eligibility)

    async def perform_upkeep(self) -> int:
        return await asyncio.to_thread(self._sync_perform_upkeep)

    async def get_pending_requests(self) -> List[PendingRequest]:
        return await asyncio.to_thread(self._sync_get_pending_requests)

    async def fulfill(
        self,
        request_id: int,
        random_words: Sequence[int],
        seed: str,
        beacon_round: int,
    ) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self._sync_fulfill, int(request_id), [int(w) for w in random_words], seed, int(beacon_round)
        )

    def close(self) -> None:
        self._session.close()

    def _request(self, method: str, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._settings.api_url}{path}"
        resp = self._session.request(
            method, url, json=json_body, timeout=self._settings.request_timeout_seconds
        )
        try:
            payload = resp.json()
        except ValueError:
            payload = resp.text
        if resp.status_code >= 400:
            raise RaffleApiError(resp.status_code, payload)
        return payload

    def _sync_check_eligibility(self) -> Eligibility:
        data = self._request("GET", "/raffle/eligibility")
        return Eligibility(
            eligible=bool(data["eligible"]),
            participant_count=int(data["participant_count"]),
            balance=int(data["balance"]),
        )

    def _sync_perform_upkeep(self) -> int:
        data = self._request("POST", "/admin/api/upkeep", {})
        return int(data["request_id"])

    def _sync_get_pending_requests(self) -> List[PendingRequest]:
        data = self._request("GET", "/admin/api/requests/pending")
        return [
            PendingRequest(
                request_id=int(item["request_id"]),
                num_words=int(item["num_words"]),
                requested_at=float(item["requested_at"]),
            )
            for item in data
        ]

    def _sync_fulfill(
        self, request_id: int, random_words: List[int], seed: str, beacon_round: int
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/admin/api/requests/{request_id}/fulfill",
            {"random_words": random_words, "seed": seed, "beacon_round": beacon_round},
        )
