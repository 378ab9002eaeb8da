# test_pdf_export.py
"""
Smoke tests for the PDF summary report.
Run with: python -m pytest test_pdf_export.py -v
"""

import tempfile
import unittest
from datetime import date
from pathlib import Path

from domain.models import EquipmentRecord
from pdf_export import export_summary_to_pdf


class TestSummaryPdf(unittest.TestCase):
    def test_report_with_records(self):
        records = [
            EquipmentRecord(
                id=str(i), sl_no=i, description=f"KIT & PARTS {i}", serial_number=f"SN-{i}",
                kit_received_date="2025-09-01", calibration_due_date="2025-09-1" + str(i),
                rate_value=100, claim_month="September 2025", approval_status="A" if i % 2 else "RE",
                is_payment_done=bool(i % 2),
            )
            for i in range(1, 6)
        ]
        with tempfile.TemporaryDirectory() as tmp:
            path = export_summary_to_pdf(records, Path(tmp) / "reports" / "summary.pdf", date(2025, 9, 11), "SAR")
            self.assertTrue(path.is_file())
            self.assertTrue(path.read_bytes().startswith(b"%PDF"))

    def test_empty_register(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = export_summary_to_pdf([], Path(tmp) / "empty.pdf", date(2025, 9, 11), "SAR")
            self.assertGreater(path.stat().st_size, 0)


if __name__ == "__main__":
    unittest.main()
