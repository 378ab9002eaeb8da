# main.py

import argparse
import sqlite3
import sys
from datetime import date
from pathlib import Path

from calculations import compute_record_fields, format_currency, parse_date, to_calendar_day
from config import get_currency
from crash_log import configure_logging, install_global_excepthook, logger, log_current_exception
from database import DB_PATH, get_connection, initialize_db, run_integrity_check, RecordStore
from database_backup import backup_database, default_backup_dir, get_backup_info, perform_daily_backup_if_needed
from domain.models import APPROVAL_STATUSES, ATTACHMENT_CATEGORIES, OWNERSHIP_TYPES, RATE_TYPES
from services import attachment_service, contact_service, contract_service, record_service, settings_service
from workflow_service import WorkflowDecision
import reporting


def _money(amount: float) -> str:
    return format_currency(amount, get_currency())


def _print_rows(headers: list[str], rows: list[list]) -> None:
    """Left-aligned plain text table."""
    cells = [[str(c) for c in headers]] + [[str(c) for c in row] for row in rows]
    widths = [max(len(row[i]) for row in cells) for i in range(len(headers))]
    for n, row in enumerate(cells):
        print("  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
        if n == 0:
            print("  ".join("-" * w for w in widths))


def _as_of(args) -> date:
    if args.as_of:
        parsed = parse_date(args.as_of)
        if parsed is None:
            raise ValueError(f"--as-of is not a valid date: {args.as_of!r}")
        return parsed
    return to_calendar_day(None)


# -----------------------------------------------------------------------------
# Register commands
# -----------------------------------------------------------------------------

def cmd_list(store: RecordStore, args) -> int:
    today = _as_of(args)
    records = record_service.search_records(store.load(), args.search or "")
    rows = []
    for r in records:
        c = compute_record_fields(r, today)
        rows.append([
            r.sl_no, r.id, r.description, r.serial_number, r.rental_company,
            c.days_using, _money(c.rental_cost), c.pending_claim_status, c.reminder_status,
        ])
    _print_rows(["SL", "ID", "Description", "Serial", "Vendor", "Days", "Cost", "Claim", "Calibration"], rows)
    print(f"{len(rows)} record(s)")
    return 0


def cmd_show(store: RecordStore, args) -> int:
    today = _as_of(args)
    r = record_service.get_record(store, args.record_id)
    c = compute_record_fields(r, today)
    fields = [
        ("SL No", r.sl_no),
        ("Description", r.description),
        ("Serial Number", r.serial_number),
        ("Unit / Qty", f"{r.unit} / {r.qty}"),
        ("Ownership", r.ownership_type),
        ("Internal Company", r.internal_company),
        ("Rental Company", r.rental_company),
        ("Rate", f"{r.rate_type} {r.rate_value}"),
        ("Received", r.kit_received_date),
        ("Returned", r.kit_returned_date or "ACTIVE"),
        ("Days Using", c.days_using),
        ("Rental Cost", _money(c.rental_cost)),
        ("Invoice", r.invoice_number or "-"),
        ("Claim Month", r.claim_month),
        ("Claim Status", c.pending_claim_status),
        ("Pending Amount", _money(c.pending_amount)),
        ("Approval", f"{r.approval_status} ({r.workflow_stage})"),
        ("Payment", f"YES {r.payment_date or ''}".strip() if r.is_payment_done else "NO"),
        ("Calibration Due", r.calibration_due_date),
        ("Calibration", f"{c.calibration_remaining_days} day(s), {c.reminder_label}"),
        ("Remarks", r.remarks or "-"),
    ]
    for label, value in fields:
        print(f"{label + ':':<18} {value}")
    if r.admin_comments:
        print("\nAdmin comments:")
        for comment in r.admin_comments:
            print(f"  [{comment.timestamp}] {comment.author}: {comment.text}")
    if r.attachments:
        print("\nAttachments:")
        for att in r.attachments:
            print(f"  {att.id}  {att.category:<11} {att.name}")
    return 0


def cmd_add(store: RecordStore, args) -> int:
    data = {
        "description": args.description,
        "serialNumber": args.serial,
        "kitReceivedDate": args.received,
        "calibrationDueDate": args.due,
        "kitReturnedDate": args.returned,
        "rateType": args.rate_type,
        "rateValue": args.rate,
        "unit": args.unit,
        "qty": args.qty,
        "internalCompany": args.company,
        "rentalCompany": args.vendor,
        "ownershipType": args.ownership,
        "invoiceNumber": args.invoice,
        "remarks": args.remarks,
    }
    record = record_service.add_record(store, data)
    print(f"Added record {record.id} (SL {record.sl_no})")
    return 0


def cmd_edit(store: RecordStore, args) -> int:
    options = {
        "description": args.description,
        "serial_number": args.serial,
        "kit_received_date": args.received,
        "calibration_due_date": args.due,
        "rate_type": args.rate_type,
        "rate_value": args.rate,
        "unit": args.unit,
        "qty": args.qty,
        "internal_company": args.company,
        "rental_company": args.vendor,
        "ownership_type": args.ownership,
        "invoice_number": args.invoice,
        "claim_month": args.claim_month,
        "remarks": args.remarks,
    }
    changes = {field: value for field, value in options.items() if value is not None}
    # An empty --returned puts the kit back in use
    if args.returned is not None:
        changes["kit_returned_date"] = args.returned.strip() or None
    if not changes:
        raise ValueError("Nothing to edit; pass at least one field option")
    record = record_service.edit_record(store, args.record_id, **changes)
    print(f"Updated record {record.id} (SL {record.sl_no})")
    return 0


def cmd_delete(store: RecordStore, args) -> int:
    record_service.delete_record(store, args.record_id)
    print(f"Deleted record {args.record_id}")
    return 0


def cmd_workflow(store: RecordStore, args) -> int:
    decision = WorkflowDecision(
        new_approval_status=args.status,
        comment=args.comment or "",
        mark_paid=args.paid,
        payment_date=args.payment_date,
    )
    result = record_service.apply_workflow(store, args.record_id, decision)
    if not result.ok:
        print(result.error.message, file=sys.stderr)
        return 2
    r = result.record
    print(f"{r.id}: {r.approval_status} / {r.workflow_stage} / paid={'YES' if r.is_payment_done else 'NO'}")
    return 0

# -----------------------------------------------------------------------------
# Summary views
# -----------------------------------------------------------------------------

def cmd_dashboard(store: RecordStore, args) -> int:
    today = _as_of(args)
    records = store.load()
    kpis = reporting.kpi_totals(records, today)
    print(f"Total kits:        {kpis.total_kits}")
    print(f"Kits in use:       {kpis.kits_in_use}")
    print(f"Returned kits:     {kpis.returned_kits}")
    print(f"Pending claims:    {kpis.pending_claims}")
    print(f"Pending amount:    {_money(kpis.total_pending_amount)}")
    print("\nCalibration health:")
    for status, count in reporting.calibration_bucket_counts(records, today).items():
        print(f"  {status:<9} {count}")
    print("\nBy company:")
    for name, count in reporting.company_distribution(records).items():
        print(f"  {name or '(none)'}: {count}")
    print("\nBy vendor:")
    for name, count in reporting.vendor_distribution(records).items():
        print(f"  {name or '(none)'}: {count}")
    active = reporting.active_kits(records, args.limit, today)
    if active:
        print("\nActive kits:")
        _print_rows(
            ["SL", "Description", "Serial", "Days", "Cost"],
            [[r.sl_no, r.description, r.serial_number, c.days_using, _money(c.rental_cost)] for r, c in active],
        )
    return 0


def cmd_invoices(store: RecordStore, args) -> int:
    today = _as_of(args)
    records = store.load()
    _print_rows(
        ["Month", "Total", "Paid", "Pending", "Status"],
        [
            [m.month, _money(m.total_cost), _money(m.paid_amount), _money(m.pending_amount),
             "CLEARED" if m.cleared else "UNPAID"]
            for m in reporting.monthly_financial_summary(records, today)
        ],
    )
    print("\nApproval status:")
    for label, count in reporting.approval_breakdown(records):
        print(f"  {label}: {count}")
    return 0


def cmd_calibration(store: RecordStore, args) -> int:
    today = _as_of(args)
    entries = reporting.calibration_action_list(store.load(), today)
    if not entries:
        print("All calibrations are up to date.")
        return 0
    _print_rows(
        ["SL", "Description", "Serial", "Due", "Days Left", "Status"],
        [[r.sl_no, r.description, r.serial_number, r.calibration_due_date,
          c.calibration_remaining_days, c.reminder_status] for r, c in entries],
    )
    return 0

# -----------------------------------------------------------------------------
# Import / export / scan
# -----------------------------------------------------------------------------

def cmd_import(store: RecordStore, args) -> int:
    from excel_import import parse_excel_to_equipment

    path = Path(args.file)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    drafts = parse_excel_to_equipment(path)
    if not drafts:
        print("No equipment rows found.")
        return 0
    if not args.yes:
        for d in drafts:
            print(f"  {d.description} | {d.serial_number} | {d.rental_company} | {d.kit_received_date}")
        print(f"{len(drafts)} record(s) parsed. Re-run with --yes to import them as {args.ownership}.")
        return 0
    added = record_service.import_records(store, drafts, args.ownership)
    print(f"Imported {len(added)} record(s)")
    return 0


def cmd_export(store: RecordStore, args) -> int:
    import sheet_export

    today = _as_of(args)
    records = store.load()
    if args.format == "tsv" and not args.output:
        print(sheet_export.to_tsv(records, today))
        return 0
    ext = {"csv": "csv", "tsv": "tsv", "sheets": "tsv", "xlsx": "xlsx"}[args.format]
    output = Path(args.output) if args.output else Path.cwd() / sheet_export.default_export_name(ext, today)
    if args.format == "csv":
        path = sheet_export.write_csv(records, output, today)
    elif args.format == "xlsx":
        path = sheet_export.write_xlsx(records, output, today)
    else:
        path = sheet_export.write_tsv(records, output, today)
    print(f"Exported {len(records)} record(s) to {path}")
    return 0


def cmd_scan(store: RecordStore, args) -> int:
    from ai_scan import scan_file

    record = record_service.get_record(store, args.record_id)
    scan = scan_file(args.file)
    if scan is None:
        print("Could not read the certificate. Enter the calibration details manually.", file=sys.stderr)
        return 1
    print(f"Certificate No.:  {scan.certificate_number}")
    print(f"Calibration Date: {scan.calibration_date}")
    print(f"Next Due Date:    {scan.next_due_date}")
    print(f"Lab:              {scan.lab_name}")
    updated = record_service.apply_calibration_suggestion(store, record.id, scan, confirmed=args.apply)
    if updated is not None:
        print(f"Calibration due date of {updated.id} set to {updated.calibration_due_date}")
    elif args.apply:
        print("Next due date could not be parsed; record left unchanged.", file=sys.stderr)
        return 1
    else:
        print("Re-run with --apply to write the next due date to the record.")
    return 0


def cmd_report(store: RecordStore, args) -> int:
    from pdf_export import export_summary_to_pdf

    path = export_summary_to_pdf(store.load(), args.output, _as_of(args))
    print(f"Report written to {path}")
    return 0

# -----------------------------------------------------------------------------
# Documents, contracts, contacts, settings
# -----------------------------------------------------------------------------

def cmd_documents(store: RecordStore, args) -> int:
    action = args.action or "list"
    if action == "list":
        docs = attachment_service.list_documents(store.load(), args.search or "", args.category)
        _print_rows(
            ["ID", "Record", "Category", "Name", "Equipment", "Uploaded"],
            [[d.attachment.id, d.record_id, d.attachment.category, d.attachment.name,
              d.equipment_name, d.attachment.uploaded_at] for d in docs],
        )
    elif action == "add":
        attachment_service.add_attachment(store, args.record_id, args.file, args.category_name)
        print(f"Attached {Path(args.file).name} to {args.record_id}")
    elif action == "remove":
        attachment_service.remove_attachment(store, args.record_id, args.attachment_id)
        print(f"Removed attachment {args.attachment_id}")
    elif action == "save":
        record = record_service.get_record(store, args.record_id)
        att = next((a for a in record.attachments if a.id == args.attachment_id), None)
        if att is None:
            raise KeyError(f"No attachment {args.attachment_id!r} on record {args.record_id!r}")
        print(f"Saved {attachment_service.save_attachment(att, args.dest)}")
    return 0


def cmd_contracts(store: RecordStore, args) -> int:
    action = args.action or "list"
    if action == "list":
        contracts = contract_service.search_contracts(store.load_contracts(), args.search or "")
        _print_rows(
            ["ID", "Company", "Equipment", "Rate", "Remarks"],
            [[c.id, c.company_name, c.equipment_type, f"{c.rate_type} {c.rate_value}", c.remarks] for c in contracts],
        )
    elif action == "add":
        contract = contract_service.add_contract(store, {
            "companyName": args.company,
            "equipmentType": args.equipment,
            "rateType": args.rate_type,
            "rateValue": args.rate,
            "remarks": args.remarks,
        })
        print(f"Added contract {contract.id}")
    elif action == "delete":
        contract_service.delete_contract(store, args.contract_id)
        print(f"Deleted contract {args.contract_id}")
    return 0


def cmd_contacts(store: RecordStore, args) -> int:
    action = args.action or "list"
    if action == "list":
        contacts = contact_service.search_contacts(store.load_contacts(), args.search or "")
        _print_rows(
            ["ID", "Name", "Company", "Phone", "Email", "Location"],
            [[c.id, c.name, c.company_name, c.contact_number, c.email, c.location] for c in contacts],
        )
    elif action == "add":
        contact = contact_service.add_contact(store, {
            "name": args.name,
            "contactNumber": args.phone,
            "email": args.email,
            "companyName": args.company,
            "location": args.location,
        })
        print(f"Added contact {contact.id}")
    elif action == "delete":
        contact_service.delete_contact(store, args.contact_id)
        print(f"Deleted contact {args.contact_id}")
    elif action == "links":
        contact = next((c for c in store.load_contacts() if c.id == args.contact_id), None)
        if contact is None:
            raise KeyError(f"No contact with id {args.contact_id!r}")
        print(f"WhatsApp: {contact_service.whatsapp_link(contact.contact_number)}")
        print(f"Email:    {contact_service.mailto_link(contact.email)}")
        print(f"Outlook:  {contact_service.outlook_web_link(contact.email)}")
    return 0


def cmd_settings(store: RecordStore, args) -> int:
    if args.value is None:
        value = store.get_setting(args.key)
        print("" if value is None else value)
        return 0
    settings_service.set_setting(store, args.key, args.value)
    print(f"{args.key} updated")
    return 0


def cmd_send_reminders(store: RecordStore, args) -> int:
    from email_utils import send_due_reminders

    count = send_due_reminders(store, _as_of(args))
    msg = f"Calibration reminder sent for {count} kit(s)." if count else "No reminders."
    print(msg)
    logger.info(msg)
    return 0


def cmd_backup(store: RecordStore, args) -> int:
    db_path = Path(args.db) if args.db else DB_PATH
    backup_dir = Path(args.dir) if args.dir else default_backup_dir(db_path)
    if args.info:
        info = get_backup_info(backup_dir)
        print(f"Backups in {backup_dir}: {info['count']} ({info['total_size']} bytes)")
        if info["newest"]:
            print(f"Newest: {info['newest']}")
            print(f"Oldest: {info['oldest']}")
        return 0
    path = backup_database(db_path, backup_dir, args.keep)
    if path is None:
        print("Backup failed, see the log for details.", file=sys.stderr)
        return 1
    print(f"Backup written to {path}")
    return 0

# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="equiptrack",
        description="EquipTrack: equipment inventory, rental cost and calibration tracker",
    )
    parser.add_argument("--db", type=str, default=None, help="Path to the SQLite store")
    parser.add_argument("--as-of", type=str, default=None, help="Evaluate day counts as of this date (default: today)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List the equipment register")
    p.add_argument("--search", default="")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("show", help="Show one record with computed fields")
    p.add_argument("record_id")
    p.set_defaults(func=cmd_show)

    p = sub.add_parser("add", help="Add an equipment record")
    p.add_argument("--description", required=True)
    p.add_argument("--serial", required=True)
    p.add_argument("--received", required=True, help="Kit received date (YYYY-MM-DD)")
    p.add_argument("--due", required=True, help="Calibration due date (YYYY-MM-DD)")
    p.add_argument("--returned", default=None)
    p.add_argument("--rate-type", choices=RATE_TYPES, default="Daily")
    p.add_argument("--rate", type=float, default=0.0)
    p.add_argument("--unit", default="set")
    p.add_argument("--qty", type=int, default=1)
    p.add_argument("--company", default="")
    p.add_argument("--vendor", default="")
    p.add_argument("--ownership", choices=OWNERSHIP_TYPES, default="Rental")
    p.add_argument("--invoice", default="")
    p.add_argument("--remarks", default="")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("edit", help="Edit fields of an equipment record")
    p.add_argument("record_id")
    p.add_argument("--description")
    p.add_argument("--serial")
    p.add_argument("--received", help="Kit received date (YYYY-MM-DD)")
    p.add_argument("--due", help="Calibration due date (YYYY-MM-DD)")
    p.add_argument("--returned", help="Kit returned date; empty string marks the kit active again")
    p.add_argument("--rate-type", choices=RATE_TYPES)
    p.add_argument("--rate", type=float)
    p.add_argument("--unit")
    p.add_argument("--qty", type=int)
    p.add_argument("--company")
    p.add_argument("--vendor")
    p.add_argument("--ownership", choices=OWNERSHIP_TYPES)
    p.add_argument("--invoice")
    p.add_argument("--claim-month")
    p.add_argument("--remarks")
    p.set_defaults(func=cmd_edit)

    p = sub.add_parser("delete", help="Delete an equipment record")
    p.add_argument("record_id")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("dashboard", help="KPIs and distributions")
    p.add_argument("--limit", type=int, default=5, help="Active kits to show")
    p.set_defaults(func=cmd_dashboard)

    p = sub.add_parser("invoices", help="Monthly financial summary and approval breakdown")
    p.set_defaults(func=cmd_invoices)

    p = sub.add_parser("calibration", help="Calibration action list")
    p.set_defaults(func=cmd_calibration)

    p = sub.add_parser("workflow", help="Apply an approval/payment decision")
    p.add_argument("record_id")
    p.add_argument("--status", required=True, choices=APPROVAL_STATUSES)
    p.add_argument("--comment", default="")
    p.add_argument("--paid", action="store_true", help="Confirm payment (Approved records only)")
    p.add_argument("--payment-date", default=None)
    p.set_defaults(func=cmd_workflow)

    p = sub.add_parser("import", help="Import records from an .xlsx workbook")
    p.add_argument("file")
    p.add_argument("--ownership", choices=OWNERSHIP_TYPES, default="Rental")
    p.add_argument("--yes", action="store_true", help="Save the parsed records")
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("export", help="Export the register")
    p.add_argument("--format", choices=("csv", "tsv", "sheets", "xlsx"), default="csv")
    p.add_argument("--output", default=None)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("scan", help="Read a calibration certificate with AI")
    p.add_argument("record_id")
    p.add_argument("file")
    p.add_argument("--apply", action="store_true", help="Write the scanned next due date")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("documents", help="Attachments across all records")
    p.add_argument("action", nargs="?", choices=("list", "add", "remove", "save"), default="list")
    p.add_argument("--search", default="")
    p.add_argument("--category", default="All", choices=("All",) + ATTACHMENT_CATEGORIES,
                   help="Filter for list")
    p.add_argument("--record-id", dest="record_id")
    p.add_argument("--attachment-id", dest="attachment_id")
    p.add_argument("--file")
    p.add_argument("--as", dest="category_name", default="Other", choices=ATTACHMENT_CATEGORIES,
                   help="Category for add")
    p.add_argument("--dest", default=".")
    p.set_defaults(func=cmd_documents)

    p = sub.add_parser("contracts", help="Rental contract master")
    p.add_argument("action", nargs="?", choices=("list", "add", "delete"), default="list")
    p.add_argument("--search", default="")
    p.add_argument("--contract-id", dest="contract_id")
    p.add_argument("--company", default="")
    p.add_argument("--equipment", default="")
    p.add_argument("--rate-type", choices=RATE_TYPES, default="Daily")
    p.add_argument("--rate", type=float, default=0.0)
    p.add_argument("--remarks", default="")
    p.set_defaults(func=cmd_contracts)

    p = sub.add_parser("contacts", help="Contact directory")
    p.add_argument("action", nargs="?", choices=("list", "add", "delete", "links"), default="list")
    p.add_argument("--search", default="")
    p.add_argument("--contact-id", dest="contact_id")
    p.add_argument("--name", default="")
    p.add_argument("--phone", default="")
    p.add_argument("--email", default="")
    p.add_argument("--company", default="")
    p.add_argument("--location", default="")
    p.set_defaults(func=cmd_contacts)

    p = sub.add_parser("settings", help="Read or write a setting")
    p.add_argument("key")
    p.add_argument("value", nargs="?", default=None)
    p.set_defaults(func=cmd_settings)

    p = sub.add_parser("send-reminders", help="Email the calibration action list")
    p.set_defaults(func=cmd_send_reminders)

    p = sub.add_parser("backup", help="Back up the store")
    p.add_argument("--dir", default=None)
    p.add_argument("--keep", type=int, default=30)
    p.add_argument("--info", action="store_true")
    p.set_defaults(func=cmd_backup)

    p = sub.add_parser("report", help="Write the PDF summary report")
    p.add_argument("output")
    p.set_defaults(func=cmd_report)

    return parser


def open_checked_store(db_path) -> RecordStore:
    """Connect, create the schema and fail fast on a corrupt store."""
    conn = initialize_db(get_connection(db_path))
    integrity_err = run_integrity_check(conn)
    if integrity_err:
        conn.close()
        raise sqlite3.DatabaseError(
            f"Database integrity check failed: {integrity_err}\n"
            f"Restore from a backup in {default_backup_dir(Path(db_path))}"
        )
    return RecordStore(conn)


def main(argv=None) -> int:
    # Install global hook so any uncaught exception is logged
    install_global_excepthook()
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)

    db_path = Path(args.db) if args.db else DB_PATH
    logger.info("Program start. command=%s db=%s", args.command, db_path)

    try:
        store = open_checked_store(db_path)
    except sqlite3.DatabaseError as e:
        logger.error("Cannot open store: %s", e)
        print(str(e), file=sys.stderr)
        return 1

    try:
        if args.command != "backup" and str(db_path) != ":memory:":
            perform_daily_backup_if_needed(db_path)
        return args.func(store, args)
    except (ValueError, KeyError, FileNotFoundError) as e:
        # KeyError str() wraps the message in quotes
        msg = e.args[0] if isinstance(e, KeyError) and e.args else str(e)
        logger.warning("Command %s failed: %s", args.command, msg)
        print(f"Error: {msg}", file=sys.stderr)
        return 1
    except Exception:
        log_current_exception("Fatal error in main()")
        raise
    finally:
        store.close()
        logger.info("Program exit")


if __name__ == "__main__":
    sys.exit(main())
