# test_main.py
"""
End-to-end CLI tests against a temporary store.
Run with: python -m pytest test_main.py -v
"""

import io
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest import mock

import main
from database import open_store


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.db = str(self.dir / "equiptrack.db")
        patches = [
            mock.patch("main.configure_logging"),
            mock.patch("main.install_global_excepthook"),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main.main(["--db", self.db, "--as-of", "2025-09-11", *argv])
        return code, out.getvalue(), err.getvalue()

    def add_kit(self, serial="GD-1"):
        return self.run_cli(
            "add", "--description", "Gas Detector", "--serial", serial,
            "--received", "2025-09-01", "--due", "2025-09-15",
            "--rate-type", "Daily", "--rate", "450", "--vendor", "Acme",
        )

    def record_id(self) -> str:
        store = open_store(self.db)
        try:
            return store.load()[0].id
        finally:
            store.close()


class TestCli(CliTestCase):
    def test_add_and_list(self):
        code, out, _ = self.add_kit()
        self.assertEqual(code, 0)
        self.assertIn("SL 1", out)
        code, out, _ = self.run_cli("list")
        self.assertEqual(code, 0)
        self.assertIn("GD-1", out)
        self.assertIn("SAR 4,500.00", out)
        self.assertIn("1 record(s)", out)

    def test_invalid_input_exits_non_zero(self):
        code, _, err = self.run_cli(
            "add", "--description", "X", "--serial", "S", "--received", "never", "--due", "2025-01-01"
        )
        self.assertEqual(code, 1)
        self.assertIn("Kit received date", err)

    def test_show_unknown_record(self):
        code, _, err = self.run_cli("show", "missing")
        self.assertEqual(code, 1)
        self.assertIn("No equipment record", err)

    def test_workflow_refusal_and_success(self):
        self.add_kit()
        rid = self.record_id()
        code, _, err = self.run_cli("workflow", rid, "--status", "A")
        self.assertEqual(code, 2)
        self.assertIn("comment", err)
        code, out, _ = self.run_cli("workflow", rid, "--status", "A", "--comment", "PO ok", "--paid")
        self.assertEqual(code, 0)
        self.assertIn("Paid", out)

    def test_edit_returns_kit_and_submits_claim(self):
        self.add_kit()
        rid = self.record_id()
        code, out, _ = self.run_cli("dashboard")
        self.assertIn("Kits in use:       1", out)
        self.assertIn("Pending claims:    1", out)

        code, out, _ = self.run_cli("edit", rid, "--returned", "2025-09-05", "--invoice", "INV-7")
        self.assertEqual(code, 0)
        self.assertIn("Updated record", out)
        code, out, _ = self.run_cli("dashboard")
        self.assertIn("Kits in use:       0", out)
        self.assertIn("Returned kits:     1", out)
        self.assertIn("Pending claims:    0", out)
        code, out, _ = self.run_cli("show", rid)
        self.assertIn("SUBMITTED", out)
        self.assertIn("INV-7", out)

        self.run_cli("edit", rid, "--returned", "")
        code, out, _ = self.run_cli("dashboard")
        self.assertIn("Kits in use:       1", out)

    def test_edit_received_date_moves_claim_month(self):
        self.add_kit()
        rid = self.record_id()
        code, _, _ = self.run_cli("edit", rid, "--received", "2025-08-20")
        self.assertEqual(code, 0)
        code, out, _ = self.run_cli("show", rid)
        self.assertIn("August 2025", out)

    def test_edit_without_fields_or_bad_date(self):
        self.add_kit()
        rid = self.record_id()
        code, _, err = self.run_cli("edit", rid)
        self.assertEqual(code, 1)
        self.assertIn("Nothing to edit", err)
        code, _, err = self.run_cli("edit", rid, "--returned", "someday")
        self.assertEqual(code, 1)
        self.assertIn("Kit returned date", err)

    def test_summary_views(self):
        self.add_kit()
        code, out, _ = self.run_cli("dashboard")
        self.assertEqual(code, 0)
        self.assertIn("Total kits:        1", out)
        code, out, _ = self.run_cli("invoices")
        self.assertIn("September 2025", out)
        self.assertIn("UNPAID", out)
        code, out, _ = self.run_cli("calibration")
        self.assertIn("URGENT", out)

    def test_export_csv_and_report(self):
        self.add_kit()
        csv_path = self.dir / "out.csv"
        code, _, _ = self.run_cli("export", "--format", "csv", "--output", str(csv_path))
        self.assertEqual(code, 0)
        self.assertIn("GD-1", csv_path.read_text(encoding="utf-8-sig"))
        pdf_path = self.dir / "summary.pdf"
        code, _, _ = self.run_cli("report", str(pdf_path))
        self.assertEqual(code, 0)
        self.assertTrue(pdf_path.read_bytes().startswith(b"%PDF"))

    def test_contacts_and_settings(self):
        code, out, _ = self.run_cli(
            "contacts", "add", "--name", "Omar", "--phone", "0551234567", "--email", "omar@acme.com"
        )
        self.assertEqual(code, 0)
        code, out, _ = self.run_cli("contacts")
        self.assertIn("omar@acme.com", out)
        self.run_cli("settings", "operator_name", "Maha")
        code, out, _ = self.run_cli("settings", "operator_name")
        self.assertEqual(out.strip(), "Maha")

    def test_send_reminders_unconfigured(self):
        self.add_kit()
        code, out, _ = self.run_cli("send-reminders")
        self.assertEqual(code, 0)
        self.assertIn("No reminders.", out)


if __name__ == "__main__":
    unittest.main()
