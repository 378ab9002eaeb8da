# test_record_service.py
"""
Tests for the record orchestration layer (validate, persist, workflow,
import, calibration suggestions) against an in-memory store.
Run with: python -m pytest test_record_service.py -v
"""

import unittest

from ai_scan import CertificateScan
from database import open_store
from domain.models import EquipmentRecord
from services import record_service, settings_service
from services.identity import get_current_user_id
from workflow_service import WorkflowDecision, WorkflowError


def form_data(**overrides) -> dict:
    data = {
        "description": "GAS DETECTOR",
        "serialNumber": "GD-100",
        "kitReceivedDate": "2025-09-01",
        "calibrationDueDate": "2026-01-15",
        "rateType": "Daily",
        "rateValue": 450,
        "internalCompany": "Site A",
        "rentalCompany": "Acme Rentals",
    }
    data.update(overrides)
    return data


class RecordServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.store = open_store(":memory:")

    def tearDown(self):
        self.store.close()


class TestAddRecord(RecordServiceTestCase):
    def test_assigns_id_sl_and_claim_month(self):
        first = record_service.add_record(self.store, form_data())
        second = record_service.add_record(self.store, form_data(serialNumber="GD-101"))
        self.assertEqual(first.sl_no, 1)
        self.assertEqual(second.sl_no, 2)
        self.assertTrue(first.id)
        self.assertNotEqual(first.id, second.id)
        self.assertEqual(first.claim_month, "September 2025")
        self.assertEqual(len(self.store.load()), 2)

    def test_new_records_start_unsubmitted(self):
        record = record_service.add_record(
            self.store, form_data(approvalStatus="A", isPaymentDone=True, paymentDate="2025-09-09")
        )
        self.assertEqual(record.approval_status, "N/A")
        self.assertEqual(record.workflow_stage, "Submitted")
        self.assertFalse(record.is_payment_done)
        self.assertIsNone(record.payment_date)

    def test_validation_errors(self):
        bad_inputs = [
            form_data(description=" "),
            form_data(serialNumber=""),
            form_data(kitReceivedDate="someday"),
            form_data(calibrationDueDate=""),
            form_data(kitReturnedDate="99/99/9999"),
            form_data(rateType="Hourly"),
            form_data(rateValue=-1),
            form_data(ownershipType="Leased"),
            form_data(qty=0),
        ]
        for data in bad_inputs:
            with self.assertRaises(ValueError):
                record_service.add_record(self.store, data)
        self.assertEqual(self.store.load(), [])


class TestUpdateDelete(RecordServiceTestCase):
    def test_update_replaces_record(self):
        record = record_service.add_record(self.store, form_data())
        record_service.update_record(self.store, record.with_changes(kit_returned_date="2025-09-20"))
        self.assertEqual(record_service.get_record(self.store, record.id).kit_returned_date, "2025-09-20")

    def test_update_refuses_paid_without_approval(self):
        record = record_service.add_record(self.store, form_data())
        with self.assertRaises(ValueError):
            record_service.update_record(
                self.store, record.with_changes(is_payment_done=True, approval_status="RE")
            )
        stored = record_service.get_record(self.store, record.id)
        self.assertFalse(stored.is_payment_done)
        self.assertEqual(stored.approval_status, "N/A")

    def test_edit_record(self):
        record = record_service.add_record(self.store, form_data())
        edited = record_service.edit_record(
            self.store, record.id, kit_received_date="2025-10-02", invoice_number="INV-1"
        )
        self.assertEqual(edited.claim_month, "October 2025")
        self.assertEqual(record_service.get_record(self.store, record.id).invoice_number, "INV-1")
        with self.assertRaises(ValueError):
            record_service.edit_record(self.store, record.id, is_payment_done=True)
        with self.assertRaises(KeyError):
            record_service.edit_record(self.store, "missing", remarks="x")

    def test_update_unknown_id(self):
        record = record_service.add_record(self.store, form_data())
        with self.assertRaises(KeyError):
            record_service.update_record(self.store, record.with_changes(id="missing"))

    def test_delete(self):
        record = record_service.add_record(self.store, form_data())
        record_service.delete_record(self.store, record.id)
        self.assertEqual(self.store.load(), [])
        with self.assertRaises(KeyError):
            record_service.delete_record(self.store, record.id)

    def test_get_unknown(self):
        with self.assertRaises(KeyError):
            record_service.get_record(self.store, "nope")


class TestSearch(RecordServiceTestCase):
    def test_case_insensitive_fields(self):
        record_service.add_record(self.store, form_data())
        record_service.add_record(
            self.store, form_data(description="TORQUE WRENCH", serialNumber="TW-1", rentalCompany="Bolt Co")
        )
        records = self.store.load()
        self.assertEqual(len(record_service.search_records(records, "gas")), 1)
        self.assertEqual(len(record_service.search_records(records, "tw-1")), 1)
        self.assertEqual(len(record_service.search_records(records, "bolt")), 1)
        self.assertEqual(len(record_service.search_records(records, "site a")), 2)
        self.assertEqual(len(record_service.search_records(records, "")), 2)


class TestApplyWorkflow(RecordServiceTestCase):
    def test_success_is_saved_with_operator_name(self):
        settings_service.set_setting(self.store, "operator_name", "Maha")
        record = record_service.add_record(self.store, form_data())
        result = record_service.apply_workflow(
            self.store, record.id, WorkflowDecision("A", comment="PO verified", mark_paid=True)
        )
        self.assertTrue(result.ok)
        stored = record_service.get_record(self.store, record.id)
        self.assertTrue(stored.is_payment_done)
        self.assertEqual(stored.admin_comments[0].author, "Maha")

    def test_refusal_is_not_saved(self):
        record = record_service.add_record(self.store, form_data())
        result = record_service.apply_workflow(self.store, record.id, WorkflowDecision("A"))
        self.assertIs(result.error, WorkflowError.MISSING_JUSTIFICATION)
        self.assertEqual(record_service.get_record(self.store, record.id), record)

    def test_unknown_record(self):
        with self.assertRaises(KeyError):
            record_service.apply_workflow(self.store, "missing", WorkflowDecision("A", comment="x"))


class TestImport(RecordServiceTestCase):
    def test_numbers_after_existing_and_applies_ownership(self):
        record_service.add_record(self.store, form_data())
        drafts = [
            EquipmentRecord(id="xl_1", sl_no=1, description="A", serial_number="S1",
                            kit_received_date="2025-09-01", calibration_due_date="2026-01-01"),
            EquipmentRecord(id="xl_2", sl_no=2, description="B", serial_number="S2",
                            kit_received_date="2025-09-01", calibration_due_date="2026-01-01"),
        ]
        added = record_service.import_records(self.store, drafts, ownership_type="Own")
        self.assertEqual([r.sl_no for r in added], [2, 3])
        self.assertTrue(all(r.ownership_type == "Own" for r in added))
        self.assertEqual(len(self.store.load()), 3)

    def test_bad_ownership(self):
        with self.assertRaises(ValueError):
            record_service.import_records(self.store, [], ownership_type="Borrowed")


class TestCalibrationSuggestion(RecordServiceTestCase):
    def setUp(self):
        super().setUp()
        self.record = record_service.add_record(self.store, form_data())
        self.scan = CertificateScan(
            certificate_number="CAL-55", calibration_date="2025-09-10",
            next_due_date="2026-09-10", lab_name="Metro Lab",
        )

    def test_not_applied_without_confirmation(self):
        self.assertIsNone(record_service.apply_calibration_suggestion(self.store, self.record.id, self.scan))
        self.assertEqual(record_service.get_record(self.store, self.record.id).calibration_due_date, "2026-01-15")

    def test_applied_when_confirmed(self):
        updated = record_service.apply_calibration_suggestion(
            self.store, self.record.id, self.scan, confirmed=True
        )
        self.assertEqual(updated.calibration_due_date, "2026-09-10")

    def test_missing_or_bad_suggestion(self):
        self.assertIsNone(record_service.apply_calibration_suggestion(self.store, self.record.id, None, True))
        bad = CertificateScan("X", "", "unknown", "Lab")
        self.assertIsNone(record_service.apply_calibration_suggestion(self.store, self.record.id, bad, True))


class TestIdentityAndSettings(RecordServiceTestCase):
    def test_default_operator(self):
        self.assertEqual(get_current_user_id(self.store), "Admin")
        self.assertEqual(get_current_user_id(), "Admin")

    def test_port_must_be_numeric(self):
        with self.assertRaises(ValueError):
            settings_service.set_setting(self.store, "smtp_port", "twenty-five")
        settings_service.set_setting(self.store, "smtp_port", " 2525 ")
        self.assertEqual(self.store.get_setting("smtp_port"), "2525")

    def test_blank_key(self):
        with self.assertRaises(ValueError):
            settings_service.set_setting(self.store, "  ", "x")


if __name__ == "__main__":
    unittest.main()
