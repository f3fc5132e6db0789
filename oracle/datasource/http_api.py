from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import requests

from .base import EntropySample, EntropySource

SEED_BYTES = 32


@dataclass(frozen=True)
class HttpBeaconSourceConfig:
    """Configuration describing how to parse the upstream beacon payload."""

    url: str
    round_key: str = "round"
    randomness_key: str = "randomness"
    timeout_seconds: int = 10


class HttpBeaconSource(EntropySource):
    """Fetch beacon output from a JSON HTTP endpoint (drand style)."""

    def __init__(self, config: HttpBeaconSourceConfig, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    async def fetch_latest(self) -> EntropySample:
        response_json = await asyncio.to_thread(
            self._get_json, self._config.url, self._config.timeout_seconds
        )
        return self._parse_payload(response_json)

    async def close(self) -> None:
        self._session.close()

    def _get_json(self, url: str, timeout_seconds: int) -> Mapping[str, Any]:
        resp = self._session.get(url, timeout=timeout_seconds)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, Mapping):
            raise ValueError("Beacon returned non-object payload")
        return data

    def _parse_payload(self, payload: Mapping[str, Any]) -> EntropySample:
        cfg = self._config
        try:
            beacon_round = int(payload[cfg.round_key])
        except KeyError as exc:
            raise ValueError(f"Missing round field: {cfg.round_key}") from exc
        except (TypeError, ValueError) as exc:
            raise ValueError("round field must be an integer") from exc

        try:
            raw_randomness = payload[cfg.randomness_key]
        except KeyError as exc:
            raise ValueError(f"Missing randomness field: {cfg.randomness_key}") from exc

        randomness = self._parse_randomness(raw_randomness)
        return EntropySample(
            round=beacon_round,
            randomness=randomness,
            fetched_at=dt.datetime.now(dt.timezone.utc),
        )

    @staticmethod
    def _parse_randomness(raw: Any) -> bytes:
        if not isinstance(raw, str):
            raise ValueError("randomness field must be a hex string")
        text = raw[2:] if raw.startswith("0x") else raw
        try:
            value = bytes.fromhex(text)
        except ValueError as exc:
            raise ValueError("randomness field is not valid hex") from exc
        if len(value) != SEED_BYTES:
            raise ValueError(f"randomness must be {SEED_BYTES} bytes, got {len(value)}")
        return value
