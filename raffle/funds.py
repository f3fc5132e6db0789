from __future__ import annotations

import logging
from typing import Dict, Optional, Set


class InMemoryFunds:
    """Funds holder kept in process memory.

    ``collect`` adds an entry payment to the pool and ``transfer`` moves
    value out to a recipient, crediting ``received``. Recipients listed in
    ``rejecting`` (or every recipient while ``fail_transfers`` is set) make the
    transfer report failure without moving anything.
    """

    def __init__(self, initial_balance: int = 0, logger: Optional[logging.Logger] = None) -> None:
        self._balance = int(initial_balance)
        self._logger = logger or logging.getLogger("chainraffle.funds")
        self.received: Dict[str, int] = {}
        self.paid_in: Dict[str, int] = {}
        self.rejecting: Set[str] = set()
        self.fail_transfers = False

    def balance(self) -> int:
        return self._balance

    def collect(self, sender: str, amount: int, reference: Optional[str] = None) -> bool:
        if amount <= 0:
            return False
        self._balance += amount
        self.paid_in[sender] = self.paid_in.get(sender, 0) + amount
        return True

    def transfer(self, recipient: str, amount: int) -> bool:
        if self.fail_transfers or recipient in self.rejecting:
            self._logger.warning("Transfer of %s to %s rejected", amount, recipient)
            return False
        if amount < 0 or amount > self._balance:
            self._logger.warning("Transfer of %s exceeds held balance %s", amount, self._balance)
            return False
        self._balance -= amount
        self.received[recipient] = self.received.get(recipient, 0) + amount
        return True
