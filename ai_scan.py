# ai_scan.py
"""
Calibration certificate scanning through the Gemini generateContent REST API.
The result is only a suggestion: callers show it and, once the operator
confirms, pass it to record_service.apply_calibration_suggestion. Any failure
(no key, network, HTTP status, malformed JSON) yields None.
"""

import base64
import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

import requests

from config import get_ai_api_key, get_ai_model

logger = logging.getLogger(__name__)

API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_TIMEOUT_SECONDS = 60

PROMPT = (
    "You are an equipment maintenance specialist. Extract the calibration details "
    "from this certificate. Focus on: Certificate Number, Calibration Date, Next Due "
    "Date (Expiry), and Lab Name. Return the result in pure JSON format."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "certificateNumber": {"type": "STRING"},
        "calibrationDate": {"type": "STRING", "description": "YYYY-MM-DD format"},
        "nextDueDate": {"type": "STRING", "description": "YYYY-MM-DD format"},
        "labName": {"type": "STRING"},
    },
    "required": ["certificateNumber", "calibrationDate", "nextDueDate", "labName"],
}


@dataclass(frozen=True)
class CertificateScan:
    certificate_number: str
    calibration_date: str
    next_due_date: str
    lab_name: str

    @classmethod
    def from_dict(cls, d: dict) -> "CertificateScan":
        return cls(
            certificate_number=str(d.get("certificateNumber") or ""),
            calibration_date=str(d.get("calibrationDate") or ""),
            next_due_date=str(d.get("nextDueDate") or ""),
            lab_name=str(d.get("labName") or ""),
        )


def strip_data_url(data: str) -> str:
    """'data:application/pdf;base64,XXXX' -> 'XXXX'; bare base64 is returned as is."""
    if "," in data and data.lstrip().startswith("data:"):
        return data.split(",", 1)[1]
    return data


def build_request_body(base64_data: str, mime_type: str) -> dict:
    return {
        "contents": [
            {
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": strip_data_url(base64_data)}},
                    {"text": PROMPT},
                ]
            }
        ],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def _response_text(payload: dict) -> str | None:
    """First text part of the first candidate."""
    for candidate in payload.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            text = part.get("text")
            if text:
                return text
    return None


def scan_calibration_certificate(
    base64_data: str,
    mime_type: str,
    api_key: str | None = None,
    model: str | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> CertificateScan | None:
    """Ask the model to read a certificate. Returns None on any failure."""
    api_key = api_key or get_ai_api_key()
    if not api_key:
        logger.warning("AI scanning skipped: no API key configured")
        return None
    url = f"{API_BASE}/{model or get_ai_model()}:generateContent"
    try:
        resp = requests.post(
            url,
            params={"key": api_key},
            json=build_request_body(base64_data, mime_type),
            timeout=timeout_seconds,
        )
        resp.raise_for_status()
        text = _response_text(resp.json())
        if not text:
            logger.warning("AI scanning returned no text")
            return None
        data = json.loads(text)
    except (requests.RequestException, ValueError) as e:
        logger.error("AI Scanning Error: %s", e)
        return None
    if not isinstance(data, dict):
        logger.error("AI Scanning Error: unexpected payload %r", data)
        return None
    return CertificateScan.from_dict(data)


def scan_file(path: str | Path, **kwargs) -> CertificateScan | None:
    """Base64-encode a certificate file and scan it. Raises FileNotFoundError."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return scan_calibration_certificate(encoded, mime, **kwargs)
