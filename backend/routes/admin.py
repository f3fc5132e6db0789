from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from raffle import (
    NoFailedPayout,
    RequestNotRecognized,
    TransferFailed,
    TransitionNotEligible,
    UnknownRequest,
)

from ..config import load_settings
from ..schemas import FulfillRequest, PendingRequestResponse, RetryPayoutRequest
from ..services.raffle_service import get_raffle_service

bp = Blueprint("admin", __name__)


def _require_admin() -> bool:
    settings = load_settings()
    api_key = settings.admin_api_key
    if api_key:
        provided = request.headers.get("X-Admin-Token")
        if provided != api_key:
            return False
    return True


@bp.before_request
def verify_admin():
    if not _require_admin():
        return jsonify({"error": "unauthorized"}), 401
    return None


@bp.post("/upkeep")
def perform_upkeep():
    raffle = get_raffle_service().raffle
    try:
        request_id = raffle.perform_transition()
    except TransitionNotEligible as exc:
        return jsonify({
            "error": "upkeep not needed",
            "balance": str(exc.balance),
            "participant_count": exc.participant_count,
            "state": exc.state.name,
        }), 400
    except Exception as exc:  # pragma: no cover
        current_app.logger.exception("Randomness request failed: %s", exc)
        return jsonify({"error": "randomness request failed"}), 502

    return jsonify({"request_id": request_id, "state": raffle.state.name})


@bp.get("/requests/pending")
def list_pending_requests():
    service = get_raffle_service()
    response = [
        PendingRequestResponse(
            request_id=req.request_id,
            num_words=req.num_words,
            request_confirmations=req.request_confirmations,
            callback_gas_limit=req.callback_gas_limit,
            requested_at=req.requested_at,
        ).model_dump()
        for req in service.pending_requests()
    ]
    return jsonify(response)


@bp.post("/requests/<int:request_id>/fulfill")
def fulfill_request(request_id: int):
    payload = request.get_json(force=True, silent=True) or {}
    data = FulfillRequest(**payload)
    service = get_raffle_service()

    try:
        outcome = service.fulfill(
            request_id,
            random_words=data.random_words,
            seed=data.seed,
            beacon_round=data.beacon_round,
        )
    except (UnknownRequest, RequestNotRecognized) as exc:
        return jsonify({"error": str(exc), "request_id": request_id}), 404
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    except TransferFailed as exc:
        current_app.logger.error("Prize payout for request %s failed: %s", request_id, exc)
        return jsonify({
            "error": str(exc),
            "winner": exc.recipient,
            "amount": str(exc.amount),
            "manual_intervention": True,
        }), 502

    return jsonify({
        "request_id": outcome.request_id,
        "round_number": outcome.round_number,
        "winner": outcome.winner,
        "winner_index": outcome.winner_index,
        "participant_count": outcome.participant_count,
        "random_word": str(outcome.random_word),
        "prize": str(outcome.prize),
        "state": service.raffle.state.name,
    })


@bp.get("/rounds")
def list_rounds():
    limit = request.args.get("limit", type=int)
    return jsonify(get_raffle_service().history.list_rounds(limit=limit))


@bp.get("/events")
def list_events():
    limit = request.args.get("limit", type=int)
    name = request.args.get("name")
    return jsonify(get_raffle_service().history.list_events(limit=limit, name=name))


@bp.get("/payouts/failed")
def list_failed_payouts():
    payouts = get_raffle_service().raffle.failed_payouts
    return jsonify([
        {"recipient": p.recipient, "amount": str(p.amount), "round_number": p.round_number}
        for p in payouts
    ])


@bp.post("/payouts/retry")
def retry_payout():
    payload = request.get_json(force=True, silent=True) or {}
    data = RetryPayoutRequest(**payload)

    try:
        payout = get_raffle_service().retry_payout(data.recipient)
    except NoFailedPayout as exc:
        return jsonify({"error": str(exc)}), 404
    except TransferFailed as exc:
        current_app.logger.error("Retried payout to %s failed: %s", data.recipient, exc)
        return jsonify({"error": str(exc)}), 502

    return jsonify({
        "recipient": payout.recipient,
        "amount": str(payout.amount),
        "round_number": payout.round_number,
    })
