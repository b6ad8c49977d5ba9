"""
Text utilities for barcodes, free-text input and Portuguese names.

Also home of the deterministic document ids, since they are built from
sanitized text.
"""

import re
import unicodedata
from typing import Optional

MAX_INPUT_LENGTH = 500
MAX_BARCODE_LENGTH = 100

_TAG_RE = re.compile(r"<[^>]*>?")
_JS_RE = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_RE = re.compile(r"on\w+=", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x1F\x7F]")
_BARCODE_RE = re.compile(r"[^a-zA-Z0-9\-_]")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_input(value: Optional[str]) -> str:
    """
    Clean free text typed by an operator.

    Strips markup, script handlers and control characters, then trims and
    truncates to 500 characters.
    """
    if not isinstance(value, str):
        return ""
    value = _TAG_RE.sub("", value)
    value = _JS_RE.sub("", value)
    value = _EVENT_RE.sub("", value)
    value = _CONTROL_RE.sub("", value)
    return value[:MAX_INPUT_LENGTH].strip()


def sanitize_barcode(value: Optional[str]) -> str:
    """
    Normalize a scanned or imported barcode.

    - Keeps only letters, digits, ``-`` and ``_``
    - Truncates to 100 characters
    - Uppercases

    "  bc-123/x " → "BC-123X"
    """
    if not isinstance(value, str):
        return ""
    return _BARCODE_RE.sub("", value)[:MAX_BARCODE_LENGTH].strip().upper()


def normalize_search_text(text: Optional[str]) -> str:
    """
    Accent-free uppercase form used for searching.

    "Cozinha Gonçalves" → "COZINHA GONCALVES"
    """
    if not text:
        return ""
    normalized = unicodedata.normalize("NFD", text.strip())
    return "".join(c for c in normalized if unicodedata.category(c) != "Mn").upper()


def format_client_display(name: str, code: Optional[str] = None) -> str:
    """Client label shown to operators: ``"{code} - {name}"`` when a code exists."""
    if code and code.strip():
        return f"{code} - {name}"
    return name


def piece_id(workspace_id: str, barcode: str) -> str:
    """Piece document id. Pure function of workspace and barcode."""
    return f"{workspace_id}_{barcode}"


def project_id(client_name: str, project_name: str) -> str:
    """Project document id, stable across repeated imports of the same project."""
    return _WHITESPACE_RE.sub("_", f"{client_name}_{project_name}").upper()
