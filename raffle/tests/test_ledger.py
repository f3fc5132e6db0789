import unittest

from raffle.ledger import RaffleLedger
from raffle.types import ABSENT_INDEX, Participant


class RaffleLedgerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.ledger = RaffleLedger()

    def test_first_entry_appends_and_records_index(self) -> None:
        record = self.ledger.enter("0xaaa", 5)

        self.assertEqual(record, Participant("0xaaa", 5, 0))
        self.assertEqual(self.ledger.count, 1)
        self.assertEqual(self.ledger.participant_at(0), "0xaaa")

    def test_repeat_entry_accumulates_without_new_slot(self) -> None:
        self.ledger.enter("0xaaa", 5)
        self.ledger.enter("0xbbb", 5)
        record = self.ledger.enter("0xaaa", 7)

        self.assertEqual(self.ledger.count, 2)
        self.assertEqual(record.contribution, 12)
        self.assertEqual(record.index, 0)

    def test_unknown_participant_has_absent_index(self) -> None:
        self.assertEqual(self.ledger.index_of("0xnobody"), ABSENT_INDEX)
        self.assertEqual(self.ledger.contribution_of("0xnobody"), 0)
        self.assertIsNone(self.ledger.get("0xnobody"))

    def test_participant_at_out_of_range(self) -> None:
        with self.assertRaises(IndexError):
            self.ledger.participant_at(0)
        self.ledger.enter("0xaaa", 1)
        with self.assertRaises(IndexError):
            self.ledger.participant_at(1)
        with self.assertRaises(IndexError):
            self.ledger.participant_at(-1)

    def test_remove_shifts_later_participants_left(self) -> None:
        for address in ("0xa", "0xb", "0xc", "0xd"):
            self.ledger.enter(address, 1)

        removed = self.ledger.remove("0xb")

        self.assertEqual(removed, Participant("0xb", 1, 1))
        self.assertEqual([p.address for p in self.ledger.participants()], ["0xa", "0xc", "0xd"])
        self.assertEqual(self.ledger.index_of("0xc"), 1)
        self.assertEqual(self.ledger.index_of("0xd"), 2)
        self.assertEqual(self.ledger.index_of("0xb"), ABSENT_INDEX)
        self.assertEqual(self.ledger.contribution_of("0xb"), 0)

    def test_remove_unknown_participant(self) -> None:
        with self.assertRaises(KeyError):
            self.ledger.remove("0xnobody")

    def test_reinstate_restores_position_and_contribution(self) -> None:
        for address in ("0xa", "0xb", "0xc"):
            self.ledger.enter(address, 2)
        removed = self.ledger.remove("0xa")

        self.ledger.reinstate(removed)

        self.assertEqual([p.address for p in self.ledger.participants()], ["0xa", "0xb", "0xc"])
        self.assertEqual(self.ledger.get("0xa"), Participant("0xa", 2, 0))
        self.assertEqual(self.ledger.index_of("0xc"), 2)

    def test_reset_clears_everything(self) -> None:
        self.ledger.enter("0xa", 1)
        self.ledger.enter("0xb", 1)

        self.ledger.reset()

        self.assertEqual(self.ledger.count, 0)
        self.assertEqual(self.ledger.participants(), [])
        self.assertEqual(self.ledger.index_of("0xa"), ABSENT_INDEX)


if __name__ == "__main__":
    unittest.main()
