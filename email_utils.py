# email_utils.py
# Calibration reminder digest, sent over SMTP with settings from the store.

from email.message import EmailMessage
import logging
import smtplib
from datetime import date, datetime
from html import escape
from typing import TYPE_CHECKING, List

from domain.models import ComputedFields, EquipmentRecord
from reporting import calibration_action_list

if TYPE_CHECKING:
    from database import RecordStore

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Calibration Reminder: {COUNT} kit(s) need attention"

Entries = List[tuple[EquipmentRecord, ComputedFields]]


def build_html_body(entries: Entries) -> str:
    rows = []
    for record, computed in entries:
        rows.append(
            f"<tr>"
            f"<td>{escape(record.description)}</td>"
            f"<td>{escape(record.serial_number)}</td>"
            f"<td>{escape(record.rental_company)}</td>"
            f"<td>{escape(record.calibration_due_date)}</td>"
            f"<td>{computed.calibration_remaining_days}</td>"
            f"<td>{escape(computed.reminder_label)}</td>"
            f"</tr>"
        )

    table_html = (
        "<table border='1' cellpadding='4' cellspacing='0'>"
        "<tr>"
        "<th>Description</th><th>Serial</th><th>Vendor</th>"
        "<th>Due Date</th><th>Days Left</th><th>Status</th>"
        "</tr>"
        + "".join(rows)
        + "</table>"
    )

    return (
        "<p>The following kits are expired or due for calibration:</p>"
        f"{table_html}"
        "<p>This is an automated reminder.</p>"
    )


def build_text_body(entries: Entries) -> str:
    lines = ["Kits expired or due for calibration:", ""]
    for record, computed in entries:
        lines.append(
            f"{record.description} (S/N {record.serial_number}), "
            f"Vendor: {record.rental_company}, "
            f"Due: {record.calibration_due_date}, "
            f"Days left: {computed.calibration_remaining_days}, "
            f"Status: {computed.reminder_status}"
        )
    lines.append("")
    lines.append("This is an automated reminder.")
    return "\n".join(lines)


def send_email(smtp_conf: dict, recipients: List[str],
               subject: str, html_body: str, text_body: str):
    if not recipients:
        return

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = smtp_conf["from"]
    msg["To"] = ", ".join(recipients)

    msg.set_content(text_body)
    msg.add_alternative(html_body, subtype="html")

    host = smtp_conf.get("host")
    port = int(smtp_conf.get("port", 587))
    username = smtp_conf.get("username")
    password = smtp_conf.get("password")
    use_tls = str(smtp_conf.get("tls", "1")) != "0"

    with smtplib.SMTP(host, port) as server:
        if use_tls:
            server.starttls()
        if username:
            server.login(username, password)
        server.send_message(msg)


def smtp_settings(store: "RecordStore") -> dict:
    return {
        "host": store.get_setting("smtp_host"),
        "port": store.get_setting("smtp_port", "587"),
        "username": store.get_setting("smtp_username", ""),
        "password": store.get_setting("smtp_password", ""),
        "from": store.get_setting("smtp_from", "equiptrack@localhost"),
        "tls": store.get_setting("smtp_tls", "1"),
    }


def send_due_reminders(store: "RecordStore", as_of: date | datetime | None = None) -> int:
    """Headless reminder run. Returns the number of kits included (0 when skipped)."""
    entries = calibration_action_list(store.load(), as_of)
    if not entries:
        return 0

    recipients = store.get_reminder_recipients()
    if not recipients:
        logger.info("Reminder skipped: no recipients configured")
        return 0

    smtp_conf = smtp_settings(store)
    if not smtp_conf["host"]:
        logger.warning("Reminder skipped: smtp_host is not set")
        return 0

    subject_template = store.get_setting("email_subject", DEFAULT_SUBJECT) or DEFAULT_SUBJECT
    subject = subject_template.replace("{COUNT}", str(len(entries)))

    send_email(smtp_conf, recipients, subject, build_html_body(entries), build_text_body(entries))
    logger.info("Calibration reminder sent to %s recipient(s) for %s kit(s)", len(recipients), len(entries))
    return len(entries)
