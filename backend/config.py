from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from raffle.types import RaffleConfig

FUNDS_BACKENDS = ("memory", "web3")


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "chainraffle-dev-secret"
    debug: bool = True


@dataclass(frozen=True)
class Web3Settings:
    rpc_url: str
    pool_private_key: str
    chain_id: Optional[int] = None
    confirmations: int = 1


@dataclass(frozen=True)
class AppSettings:
    flask: FlaskSettings
    raffle: RaffleConfig
    funds_backend: str
    web3: Optional[Web3Settings]
    database_url: str
    admin_api_key: Optional[str]


def _require(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {key}")
    return value


def _int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {key} must be an integer") from exc


def _load_raffle_config() -> RaffleConfig:
    return RaffleConfig(
        entry_fee=_int("RAFFLE_ENTRY_FEE", 10**16),
        interval=_int("RAFFLE_INTERVAL_SECONDS", 60 * 60 * 24 * 30),
        min_participants=_int("RAFFLE_MIN_PARTICIPANTS", 3),
        request_confirmations=_int("RAFFLE_REQUEST_CONFIRMATIONS", 3),
        callback_gas_limit=_int("RAFFLE_CALLBACK_GAS_LIMIT", 500000),
        num_words=_int("RAFFLE_NUM_WORDS", 1),
    )


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> AppSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()

    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "chainraffle-dev-secret"),
        debug=os.getenv("FLASK_DEBUG", "1") == "1",
    )

    funds_backend = os.getenv("FUNDS_BACKEND", "memory").strip().lower()
    if funds_backend not in FUNDS_BACKENDS:
        raise RuntimeError(f"FUNDS_BACKEND must be one of {', '.join(FUNDS_BACKENDS)}")

    web3_settings = None
    if funds_backend == "web3":
        chain_id = os.getenv("CHAIN_ID")
        web3_settings = Web3Settings(
            rpc_url=_require("RPC_URL"),
            pool_private_key=_require("POOL_PRIVATE_KEY"),
            chain_id=int(chain_id) if chain_id else None,
            confirmations=_int("TRANSFER_CONFIRMATIONS", 1),
        )

    try:
        raffle_config = _load_raffle_config()
    except ValueError as exc:
        raise RuntimeError(f"Invalid raffle configuration: {exc}") from exc

    return AppSettings(
        flask=flask_settings,
        raffle=raffle_config,
        funds_backend=funds_backend,
        web3=web3_settings,
        database_url=os.getenv("DATABASE_URL", "sqlite:///chainraffle.db"),
        admin_api_key=os.getenv("ADMIN_API_KEY"),
    )
