"""Guest list and confirmation batch readers."""

import csv
import io
import json
import logging
import re
from pathlib import Path
from typing import Any

from guestmatch import GuestRecord

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

GUEST_COLUMNS = {'Name'}
CONFIRMATION_COLUMNS = {'Name', 'Guests', 'Attending'}

_YES = {'yes', 'y', 'true', '1', 'si', 'sí', 's'}
_NO = {'no', 'n', 'false', '0'}


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse any run of whitespace into one space and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def _read_rows(path: Path, required_cols: set[str]) -> list[tuple[int, dict[str, str]]]:
    """Read a CSV file into whitespace-normalized rows.

    The delimiter (comma, semicolon or tab) is sniffed from the header.

    Returns:
        (line number, row) pairs.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is empty or required columns are missing.
    """
    encoding = detect_encoding(path)
    with open(path, 'r', encoding=encoding, newline='') as f:
        content = f.read()

    # Strip BOM if present
    content = content.lstrip('\ufeff')
    header = content.split('\n', 1)[0]
    delimiter = max((',', ';', '\t'), key=header.count)

    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    if reader.fieldnames is None:
        raise ValueError(f"File {path} is empty or has no header row.")
    actual_cols = {normalize_whitespace(c) for c in reader.fieldnames}
    missing = required_cols - actual_cols
    if missing:
        raise ValueError(f"Missing columns in {path}: {', '.join(sorted(missing))}")

    rows = []
    for row_num, row in enumerate(reader, start=2):
        cleaned = {normalize_whitespace(k): normalize_whitespace(v or '')
                   for k, v in row.items() if k is not None}
        rows.append((row_num, cleaned))
    return rows


def read_guests_csv(path: str | Path) -> list[GuestRecord]:
    """Read a guest list from CSV.

    Required column: ``Name``. Optional: ``ID``, ``Phone``, ``Relation``,
    ``Status``. Guests without an ID get ``row-<line>`` so they can be
    updated later. Rows with an empty name are skipped.

    Args:
        path: Path to the CSV file.

    Returns:
        List of GuestRecord objects.
    """
    path = Path(path)
    guests: list[GuestRecord] = []
    for row_num, row in _read_rows(path, GUEST_COLUMNS):
        if not row.get('Name'):
            log.warning("Row %d in %s skipped: empty name", row_num, path)
            continue
        guests.append(GuestRecord(
            id=row.get('ID') or f'row-{row_num}',
            name=row['Name'],
            phone=row.get('Phone') or None,
            relation=row.get('Relation', ''),
            status=row.get('Status') or 'pending',
        ))

    log.info("%d guests read from %s", len(guests), path)
    return guests


def read_guests_json(path: str | Path) -> list[GuestRecord]:
    """Read a guest list exported from the document store.

    The file holds a JSON array of guest documents (``_id``, ``name``,
    ``phone``, ``attendance`` ...).

    Raises:
        ValueError: If the file does not contain a JSON array, or a
            document is not a valid guest (pydantic ``ValidationError``).
    """
    path = Path(path)
    with open(path, 'r', encoding=detect_encoding(path)) as f:
        content = f.read()

    # Strip BOM if present
    documents = json.loads(content.lstrip('\ufeff'))
    if not isinstance(documents, list):
        raise ValueError(f"{path} must contain a JSON array of guests")

    guests = [GuestRecord.model_validate(doc) for doc in documents if isinstance(doc, dict)]
    log.info("%d guests read from %s", len(guests), path)
    return guests


def load_guests(path: str | Path) -> list[GuestRecord]:
    """Read a guest list, choosing the format from the file suffix."""
    path = Path(path)
    if path.suffix.lower() == '.json':
        return read_guests_json(path)
    return read_guests_csv(path)


def _parse_attending(value: str) -> Any:
    lowered = value.lower()
    if lowered in _YES:
        return True
    if lowered in _NO:
        return False
    return value


def _parse_guests(value: str) -> Any:
    try:
        return int(value)
    except ValueError:
        return value or None


def read_confirmations(path: str | Path) -> list[dict[str, Any]]:
    """Read a batch of RSVP submissions from CSV.

    Required columns: ``Name``, ``Guests``, ``Attending``. Optional:
    ``Phone``, ``Comments``. Values that cannot be converted are passed
    through unchanged so validation can report them.

    Args:
        path: Path to the CSV file.

    Returns:
        Payload dicts shaped like the confirmation JSON body.
    """
    path = Path(path)
    payloads = []
    for _, row in _read_rows(path, CONFIRMATION_COLUMNS):
        payload: dict[str, Any] = {
            'name': row.get('Name', ''),
            'numberOfGuests': _parse_guests(row.get('Guests', '')),
            'willAttend': _parse_attending(row.get('Attending', '')),
        }
        if row.get('Phone'):
            payload['phone'] = row['Phone']
        if row.get('Comments'):
            payload['comments'] = row['Comments']
        payloads.append(payload)

    log.info("%d confirmations read from %s", len(payloads), path)
    return payloads
