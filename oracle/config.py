from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _require_env(key: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


@dataclass(frozen=True)
class BeaconSettings:
    url: str
    round_key: str = "round"
    randomness_key: str = "randomness"
    timeout_seconds: int = 10


@dataclass(frozen=True)
class OracleSettings:
    api_url: str
    admin_token: Optional[str] = None
    poll_interval_seconds: int = 30
    submit_only_once: bool = False
    perform_upkeep: bool = True
    stale_request_seconds: int = 3600
    state_file: str = "oracle_state.json"
    request_timeout_seconds: int = 10
    beacon: BeaconSettings = BeaconSettings(url="https://api.drand.sh/public/latest")

    def copy(self, **updates) -> "OracleSettings":
        return replace(self, **updates)


def load_from_environment() -> OracleSettings:
    api_url = _require_env("RAFFLE_API_URL")

    beacon = BeaconSettings(
        url=os.getenv("BEACON__URL", "https://api.drand.sh/public/latest"),
        round_key=os.getenv("BEACON__ROUND_KEY", "round"),
        randomness_key=os.getenv("BEACON__RANDOMNESS_KEY", "randomness"),
        timeout_seconds=_int_from_env(os.getenv("BEACON__TIMEOUT_SECONDS"), 10),
    )

    return OracleSettings(
        api_url=api_url.rstrip("/"),
        admin_token=os.getenv("RAFFLE_ADMIN_TOKEN") or None,
        poll_interval_seconds=_int_from_env(os.getenv("POLL_INTERVAL_SECONDS"), 30),
        submit_only_once=_bool_from_env(os.getenv("SUBMIT_ONCE"), False),
        perform_upkeep=_bool_from_env(os.getenv("PERFORM_UPKEEP"), True),
        stale_request_seconds=_int_from_env(os.getenv("STALE_REQUEST_SECONDS"), 3600),
        state_file=os.getenv("STATE_FILE", "oracle_state.json"),
        request_timeout_seconds=_int_from_env(os.getenv("REQUEST_TIMEOUT_SECONDS"), 10),
        beacon=beacon,
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> OracleSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
