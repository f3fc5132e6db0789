from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..db import engine
from ..services.raffle_service import get_raffle_service

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    database_ok = True
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        database_ok = False

    raffle = get_raffle_service().raffle
    status = 200 if database_ok else 503
    return jsonify({"ok": database_ok, "database": database_ok, "state": raffle.state.name}), status
