from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from raffle import (
    ContributionNotReceived,
    ExitNotAllowed,
    InsufficientContribution,
    RoundNotOpen,
    TransferFailed,
)

from ..schemas import (
    EligibilityResponse,
    EnterRequest,
    EnterResponse,
    ExitRequest,
    ExitResponse,
    RaffleStatusResponse,
)
from ..services.raffle_service import get_raffle_service

bp = Blueprint("raffle", __name__)


@bp.get("")
def get_status():
    service = get_raffle_service()
    return jsonify(RaffleStatusResponse(**service.status()).model_dump())


@bp.post("/enter")
def enter_raffle():
    payload = request.get_json(force=True, silent=True) or {}
    data = EnterRequest(**payload)
    raffle = get_raffle_service().raffle

    try:
        record = raffle.enter(data.participant, data.amount, reference=data.tx_hash)
    except InsufficientContribution as exc:
        return jsonify({"error": str(exc), "entry_fee": str(exc.entry_fee)}), 400
    except ContributionNotReceived as exc:
        return jsonify({"error": str(exc)}), 402
    except RoundNotOpen as exc:
        return jsonify({"error": str(exc)}), 409

    response = EnterResponse(
        participant=record.address,
        index=record.index,
        contribution=str(record.contribution),
        round_number=raffle.round_number,
    )
    return jsonify(response.model_dump()), 201


@bp.post("/exit")
def exit_raffle():
    payload = request.get_json(force=True, silent=True) or {}
    data = ExitRequest(**payload)
    raffle = get_raffle_service().raffle

    try:
        refunded = raffle.exit(data.participant)
    except RoundNotOpen as exc:
        return jsonify({"error": str(exc)}), 409
    except ExitNotAllowed as exc:
        return jsonify({"error": str(exc), "reason": exc.reason}), 400
    except TransferFailed as exc:
        current_app.logger.error("Refund to %s failed: %s", data.participant, exc)
        return jsonify({"error": str(exc)}), 502

    return jsonify(ExitResponse(participant=data.participant, refunded=str(refunded)).model_dump())


@bp.get("/players")
def list_players():
    raffle = get_raffle_service().raffle
    players = [
        {"participant": p.address, "index": p.index, "contribution": str(p.contribution)}
        for p in raffle.players()
    ]
    return jsonify(players)


@bp.get("/players/<int:index>")
def get_player(index: int):
    raffle = get_raffle_service().raffle
    try:
        participant = raffle.get_player(index)
    except IndexError:
        return jsonify({"error": "player not found"}), 404
    return jsonify({"participant": participant, "index": index})


@bp.get("/participants/<address>")
def get_participant(address: str):
    raffle = get_raffle_service().raffle
    return jsonify(
        {
            "participant": address,
            "index": raffle.player_index(address),
            "contribution": str(raffle.contribution_of(address)),
        }
    )


@bp.get("/eligibility")
def get_eligibility():
    snapshot = get_raffle_service().raffle.eligibility_snapshot()
    response = EligibilityResponse(
        eligible=snapshot.eligible,
        state=snapshot.state.name,
        elapsed=snapshot.elapsed,
        interval=snapshot.interval,
        participant_count=snapshot.participant_count,
        min_participants=snapshot.min_participants,
        balance=str(snapshot.balance),
    )
    return jsonify(response.model_dump())
