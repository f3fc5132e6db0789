from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify

from ..config import load_settings
from ..services.raffle_service import get_raffle_service

bp = Blueprint("config", __name__)


def _get_raffle_metadata() -> Dict[str, Any]:
    settings = load_settings()
    raffle = get_raffle_service().raffle
    payload: Dict[str, Any] = {
        "entry_fee": str(raffle.entry_fee),
        "interval": raffle.interval,
        "min_participants": raffle.min_participants,
        "request_confirmations": raffle.request_confirmations,
        "callback_gas_limit": raffle.callback_gas_limit,
        "num_words": raffle.num_words,
        "funds_backend": settings.funds_backend,
        "pool_address": None,
    }

    funds = raffle.funds
    address = getattr(funds, "address", None)
    if address is not None:
        payload["pool_address"] = address
    if settings.web3 is not None:
        payload["chain_id"] = settings.web3.chain_id
    current_app.logger.debug("Serving raffle configuration: %s", payload)
    return payload


@bp.get("/config")
def get_config():
    data = _get_raffle_metadata()
    return jsonify(data)
