# test_database.py
"""
Tests for the sqlite-backed record store: namespaces, settings, change
listeners and tolerance of corrupt payloads.
Run with: python -m pytest test_database.py -v
"""

import tempfile
import unittest
from pathlib import Path

from database import RECORDS_KEY, RecordStore, open_store, run_integrity_check
from domain.models import AdminComment, Attachment, ContactEntry, EquipmentRecord, RentalContract


def make_record(record_id: str = "r1") -> EquipmentRecord:
    return EquipmentRecord(
        id=record_id,
        sl_no=1,
        description="PRESSURE GAUGE",
        serial_number="PG-1",
        kit_received_date="2025-09-01",
        calibration_due_date="2026-01-01",
        admin_comments=(AdminComment(id="c1", text="ok", author="Admin", timestamp="2025-09-02T10:00:00"),),
        attachments=(
            Attachment(
                id="a1", name="cert.pdf", data="data:application/pdf;base64,JVBERg==",
                type="application/pdf", uploaded_at="2025-09-02T10:00:00", category="Certificate",
            ),
        ),
    )


class TestRecordStore(unittest.TestCase):
    def setUp(self):
        self.store = open_store(":memory:")

    def tearDown(self):
        self.store.close()

    def test_empty_store_loads_empty_lists(self):
        self.assertEqual(self.store.load(), [])
        self.assertEqual(self.store.load_contracts(), [])
        self.assertEqual(self.store.load_contacts(), [])

    def test_save_and_load_records(self):
        record = make_record()
        self.store.save([record])
        self.assertEqual(self.store.load(), [record])

    def test_save_replaces_collection(self):
        self.store.save([make_record("a"), make_record("b")])
        self.store.save([make_record("c")])
        self.assertEqual([r.id for r in self.store.load()], ["c"])

    def test_subscribe_and_unsubscribe(self):
        seen = []
        unsubscribe = self.store.subscribe(lambda records: seen.append([r.id for r in records]))
        self.store.save([make_record("a")])
        unsubscribe()
        self.store.save([make_record("b")])
        self.assertEqual(seen, [["a"]])

    def test_failing_subscriber_does_not_break_save(self):
        def boom(records):
            raise RuntimeError("listener failed")

        self.store.subscribe(boom)
        with self.assertLogs("database", level="ERROR"):
            self.store.save([make_record()])
        self.assertEqual(len(self.store.load()), 1)

    def test_corrupt_payload_is_treated_as_empty(self):
        self.store._write_json(RECORDS_KEY, [])
        self.store.conn.execute("UPDATE kv_store SET value = ? WHERE key = ?", ("{not json", RECORDS_KEY))
        self.store.conn.commit()
        with self.assertLogs("database", level="WARNING"):
            self.assertEqual(self.store.load(), [])

    def test_contracts_and_contacts_are_separate_namespaces(self):
        self.store.save_contracts([RentalContract(id="k1", company_name="Acme", equipment_type="Gauge")])
        self.store.save_contacts([ContactEntry(id="p1", name="Omar", contact_number="0551234567", email="o@x.io")])
        self.assertEqual([c.company_name for c in self.store.load_contracts()], ["Acme"])
        self.assertEqual([c.name for c in self.store.load_contacts()], ["Omar"])
        self.assertEqual(self.store.load(), [])

    def test_settings(self):
        self.assertEqual(self.store.get_setting("smtp_host", "none"), "none")
        self.store.set_setting("smtp_host", "mail.local")
        self.store.set_setting("smtp_host", "mail2.local")
        self.assertEqual(self.store.get_setting("smtp_host"), "mail2.local")

    def test_reminder_recipients(self):
        self.store.set_setting("reminder_recipients", "a@x.io; b@x.io, ,c@x.io")
        self.assertEqual(self.store.get_reminder_recipients(), ["a@x.io", "b@x.io", "c@x.io"])

    def test_integrity_check(self):
        self.assertIsNone(run_integrity_check(self.store.conn))


class TestFileStore(unittest.TestCase):
    def test_data_survives_reopen(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "store.db"
            store = open_store(path)
            store.save([make_record()])
            store.close()
            reopened = open_store(path)
            try:
                self.assertEqual(reopened.load(), [make_record()])
                self.assertIsInstance(reopened, RecordStore)
            finally:
                reopened.close()


class TestRecordFromDict(unittest.TestCase):
    def test_payment_flag_from_text(self):
        base = make_record().to_dict()
        for raw, expected in [("false", False), ("0", False), ("", False), (None, False),
                              ("true", True), (True, True), (False, False)]:
            d = dict(base, isPaymentDone=raw)
            self.assertIs(EquipmentRecord.from_dict(d).is_payment_done, expected, raw)


if __name__ == "__main__":
    unittest.main()
