"""
Case Records - CSV import and German text conventions
=====================================================
Reads the semicolon-separated case list exported from the firm's
spreadsheet and turns each row into an immutable CaseRecord.

Numbers arrive in German notation ("26.264,34"). Anything that does not
parse becomes zero, but the field name is kept on the record and logged,
so callers can tell a real zero from a broken cell.
"""

import csv
import logging
import os
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from kostennote.billing.models import CaseRecord, ParsedNumber, Person, SheetFigures, ZERO
from kostennote.core.errors import RecordSourceError

log = logging.getLogger("kostennote.records")

# ── Column names (header row of Gesamtliste.csv) ──
COL_LF_NR = "Lf. Nr."
COL_FILE_REF = "Az. TILP"
COL_DISPUTE_VALUE = "Streitwert Klage"
COL_INVOICE_NUMBER = "Rechnungsnummer"
COL_STREET = "Strasse"
COL_ZIP = "PLZ"
COL_CITY = "Ort"
COL_COUNTRY = "Land"
SALUTATION_COLS = ("Anrede", "Anrede2", "Anrede3")
FIRST_NAME_COLS = ("Vorname1", "Vorname2", "Vorname3")
LAST_NAME_COLS = ("Nachname1", "Nachname2", "Nachname3")

SHEET_COLS = {
    "total_dispute_value":   "Gesamtstreitwert",
    "total_invoice_amount":  "Gesamtrechnungsbetrag",
    "share":                 "Anteil",
    "single_invoice_amount": "Einzelrechnungsbetrag",
    "increase_fee":          "Erhöhungsgebühr",
    "intermediate_sum":      "Zwischensumme",
    "vat":                   "Umsatzsteuer",
    "grand_total":           "Summa",
}

GERMAN_MONTHS = (
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
)

_NUMBER_RE = re.compile(r"^[-+]?(\d+(\.\d*)?|\.\d+)$")


# ═══════════════════════════════════════════════════════════════════════
# German text conventions
# ═══════════════════════════════════════════════════════════════════════

def parse_german_number(text) -> ParsedNumber:
    """Parse "26.264,34" → 26264.34. Unparseable input → zero, flagged invalid.

    Dots are thousands separators and are dropped; the first comma is the
    decimal separator. A trailing "€" is tolerated.
    """
    if not isinstance(text, str) or not text.strip():
        return ParsedNumber(ZERO, invalid=True, raw=text if isinstance(text, str) else "")

    normalized = text.strip().rstrip("€").strip().replace(".", "").replace(",", ".", 1)
    if not _NUMBER_RE.match(normalized):
        return ParsedNumber(ZERO, invalid=True, raw=text)
    try:
        return ParsedNumber(Decimal(normalized), raw=text)
    except InvalidOperation:
        return ParsedNumber(ZERO, invalid=True, raw=text)


def format_german_date(day: Optional[date] = None) -> str:
    """e.g. "27. November 2025". Defaults to today."""
    day = day or date.today()
    return f"{day.day}. {GERMAN_MONTHS[day.month - 1]} {day.year}"


def _split_title(first_name: str) -> Tuple[str, str]:
    if first_name.startswith("Dr."):
        return "Dr.", first_name.replace("Dr.", "", 1).strip()
    return "", first_name.strip()


def format_person(person: Person, first: bool = False) -> str:
    """ "Dr. Hans Müller". A first-person last name starting with c/o goes on its own line."""
    title, first_name = _split_title(person.first_name)
    last_name = person.last_name
    if first and last_name.startswith("c/o"):
        last_name = "\n" + last_name
    return f"{title} {first_name} {last_name}".strip()


def build_recipient_name(persons: Sequence[Person]) -> str:
    """Join up to three recipients: "A und B" or "A, B und C"."""
    parts = [
        format_person(p, first=(i == 0))
        for i, p in enumerate(persons)
        if p.first_name and p.last_name
    ]
    if len(parts) == 3:
        return f"{parts[0]}, {parts[1]} und {parts[2]}"
    return " und ".join(parts)


def build_salutation(salutations: Sequence[str]) -> str:
    """ "Herrn", "Frau und Herrn" or "Frau, Herrn und Frau"."""
    present = [s for s in salutations if s]
    if len(present) >= 3:
        return f"{present[0]}, {present[1]} und {present[2]}"
    return " und ".join(present)


# ═══════════════════════════════════════════════════════════════════════
# CSV
# ═══════════════════════════════════════════════════════════════════════

def read_csv(path: str, separator: str = ";") -> List[Dict[str, str]]:
    """Read the case CSV. Keys and values are whitespace-trimmed.

    Raises:
        RecordSourceError: file missing or not readable.
    """
    if not os.path.exists(path):
        raise RecordSourceError(f"CSV file not found: {path}")

    rows = []
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f, delimiter=separator)
            for row in reader:
                rows.append({
                    (k or "").strip(): (v.strip() if isinstance(v, str) else "")
                    for k, v in row.items()
                })
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RecordSourceError(f"Could not read CSV {path}: {e}") from e

    log.info("Read %d records from %s", len(rows), path)
    return rows


def case_record_from_row(row: Dict[str, str]) -> CaseRecord:
    """Build a CaseRecord from one trimmed CSV row."""
    invalid = []

    def number(col: str) -> Decimal:
        parsed = parse_german_number(row.get(col, ""))
        if parsed.invalid:
            invalid.append(col)
        return parsed.value

    dispute_value = number(COL_DISPUTE_VALUE)
    sheet = SheetFigures(**{attr: number(col) for attr, col in SHEET_COLS.items()})

    persons = tuple(
        Person(row.get(s, ""), row.get(fn, ""), row.get(ln, ""))
        for s, fn, ln in zip(SALUTATION_COLS, FIRST_NAME_COLS, LAST_NAME_COLS)
    )

    record = CaseRecord(
        lf_nr=row.get(COL_LF_NR, "").strip(),
        invoice_number=row.get(COL_INVOICE_NUMBER, ""),
        dispute_value=dispute_value,
        persons=persons,
        street=row.get(COL_STREET, ""),
        zip_code=row.get(COL_ZIP, ""),
        city=row.get(COL_CITY, ""),
        country=row.get(COL_COUNTRY, ""),
        file_reference=row.get(COL_FILE_REF, ""),
        sheet=sheet,
        invalid_fields=tuple(invalid),
    )
    if COL_DISPUTE_VALUE in record.invalid_fields:
        log.warning("Lf. Nr. %s: '%s' not a number (%r), using 0",
                    record.lf_nr, COL_DISPUTE_VALUE, row.get(COL_DISPUTE_VALUE, ""),
                    extra={"lf_nr": record.lf_nr})
    return record


def filter_rows(rows: Iterable[Dict[str, str]]) -> Tuple[List[Dict[str, str]], int]:
    """Drop rows without a first last name. Returns (kept, skipped_count)."""
    rows = list(rows)
    kept = [r for r in rows if r.get(LAST_NAME_COLS[0], "").strip()]
    return kept, len(rows) - len(kept)


def read_case_records(path: str, separator: str = ";") -> Tuple[List[CaseRecord], int]:
    """CSV → CaseRecords, skipping rows with an empty Nachname1.

    Returns:
        (records, skipped_count)
    """
    rows, skipped = filter_rows(read_csv(path, separator))
    if skipped:
        log.info("Skipped %d row(s) with empty %s", skipped, LAST_NAME_COLS[0])
    return [case_record_from_row(r) for r in rows], skipped
