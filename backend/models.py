from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class RaffleEventRecord(Base):
    __tablename__ = "raffle_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    round_number = Column(Integer, nullable=False)
    name = Column(String(32), nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    def set_payload(self, payload: Dict[str, Any]) -> None:
        self.payload = json.dumps(payload)

    def get_payload(self) -> Dict[str, Any]:
        return json.loads(self.payload)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "round_number": self.round_number,
            "name": self.name,
            "payload": self.get_payload(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class RoundRecord(Base):
    __tablename__ = "rounds"

    round_number = Column(Integer, primary_key=True)
    request_id = Column(Integer, nullable=False)
    # uint256 values do not fit a database integer column.
    random_word = Column(String(78), nullable=False)
    seed = Column(String(66), nullable=True)
    beacon_round = Column(Integer, nullable=True)
    participant_count = Column(Integer, nullable=False)
    winner_index = Column(Integer, nullable=False)
    winner = Column(String(64), nullable=False)
    prize = Column(String(78), nullable=False)
    paid = Column(Boolean, nullable=False, default=False)
    finalized_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "round_number": self.round_number,
            "request_id": self.request_id,
            "random_word": self.random_word,
            "seed": self.seed,
            "beacon_round": self.beacon_round,
            "participant_count": self.participant_count,
            "winner_index": self.winner_index,
            "winner": self.winner,
            "prize": self.prize,
            "paid": self.paid,
            "finalized_at": self.finalized_at.isoformat() if self.finalized_at else None,
        }
