from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from raffle.types import RoundOutcome

from ..db import session_scope
from ..models import RaffleEventRecord, RoundRecord


class HistoryRepository:
    """Audit trail of raffle events and finalized rounds."""

    def record_event(self, round_number: int, name: str, payload: Dict[str, Any]) -> RaffleEventRecord:
        with session_scope() as session:
            record = RaffleEventRecord(round_number=round_number, name=name)
            record.set_payload(payload)
            session.add(record)
            session.flush()
            session.refresh(record)
            session.expunge(record)
            return record

    def list_events(self, limit: Optional[int] = None, name: Optional[str] = None) -> List[Dict[str, Any]]:
        with session_scope() as session:
            query = session.query(RaffleEventRecord).order_by(RaffleEventRecord.id.desc())
            if name:
                query = query.filter(RaffleEventRecord.name == name)
            if limit:
                query = query.limit(limit)
            return [record.to_dict() for record in query.all()]

    def record_round(
        self,
        outcome: RoundOutcome,
        seed: Optional[str] = None,
        beacon_round: Optional[int] = None,
    ) -> RoundRecord:
        with session_scope() as session:
            record = session.get(RoundRecord, outcome.round_number)
            if record is None:
                record = RoundRecord(round_number=outcome.round_number)
                session.add(record)
            record.request_id = outcome.request_id
            record.random_word = str(outcome.random_word)
            record.seed = seed
            record.beacon_round = beacon_round
            record.participant_count = outcome.participant_count
            record.winner_index = outcome.winner_index
            record.winner = outcome.winner
            record.prize = str(outcome.prize)
            record.paid = outcome.paid
            record.finalized_at = dt.datetime.fromtimestamp(outcome.finalized_at, dt.timezone.utc).replace(
                tzinfo=None
            )
            session.flush()
            session.refresh(record)
            session.expunge(record)
            return record

    def mark_paid(self, round_number: int) -> Optional[RoundRecord]:
        with session_scope() as session:
            record = session.get(RoundRecord, round_number)
            if not record:
                return None
            record.paid = True
            session.flush()
            session.refresh(record)
            session.expunge(record)
            return record

    def get_round(self, round_number: int) -> Optional[RoundRecord]:
        with session_scope() as session:
            record = session.get(RoundRecord, round_number)
            if record:
                session.expunge(record)
            return record

    def list_rounds(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        with session_scope() as session:
            query = session.query(RoundRecord).order_by(RoundRecord.round_number.desc())
            if limit:
                query = query.limit(limit)
            return [record.to_dict() for record in query.all()]
