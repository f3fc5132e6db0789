from __future__ import annotations

from typing import Dict, List, Optional

from .types import ABSENT_INDEX, Participant


class RaffleLedger:
    """Participants of the current round and what each of them paid in.

    The ledger performs no policy checks of its own; the owning
    :class:`~raffle.state_machine.Raffle` decides when a mutation is allowed.
    """

    def __init__(self) -> None:
        self._order: List[str] = []
        self._records: Dict[str, Participant] = {}

    @property
    def count(self) -> int:
        return len(self._order)

    def participant_at(self, position: int) -> str:
        if position < 0 or position >= len(self._order):
            raise IndexError(f"No participant at position {position}")
        return self._order[position]

    def index_of(self, participant: str) -> int:
        record = self._records.get(participant)
        if record is None:
            return ABSENT_INDEX
        return record.index

    def contribution_of(self, participant: str) -> int:
        record = self._records.get(participant)
        return record.contribution if record else 0

    def get(self, participant: str) -> Optional[Participant]:
        record = self._records.get(participant)
        if record is None:
            return None
        return Participant(record.address, record.contribution, record.index)

    def participants(self) -> List[Participant]:
        return [self.get(address) for address in self._order]

    def enter(self, participant: str, amount: int) -> Participant:
        if amount < 0:
            raise ValueError("amount must not be negative")
        record = self._records.get(participant)
        if record is None:
            record = Participant(address=participant)
            self._records[participant] = record
        if record.index == ABSENT_INDEX:
            record.index = len(self._order)
            self._order.append(participant)
        record.contribution += amount
        return self.get(participant)

    def remove(self, participant: str) -> Participant:
        """Drop a participant, shifting later entries one position left.

        Returns the record as it was before removal so the caller can
        :meth:`reinstate` it.
        """
        record = self._records.get(participant)
        if record is None or record.index == ABSENT_INDEX:
            raise KeyError(participant)
        removed = Participant(record.address, record.contribution, record.index)
        del self._order[record.index]
        for position in range(record.index, len(self._order)):
            self._records[self._order[position]].index = position
        del self._records[participant]
        return removed

    def reinstate(self, record: Participant) -> None:
        if record.address in self._records:
            raise ValueError(f"{record.address} is already tracked")
        position = min(max(record.index, 0), len(self._order))
        self._order.insert(position, record.address)
        self._records[record.address] = Participant(record.address, record.contribution, position)
        for later in range(position + 1, len(self._order)):
            self._records[self._order[later]].index = later

    def reset(self) -> None:
        self._order.clear()
        self._records.clear()
