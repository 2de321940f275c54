"""
Shared pytest fixtures for the Kostennote test suite.

PDFs are built on the fly with reportlab; every page carries a marker word
so tests can see which letterhead page ended up under which content page.
"""
import csv
import io
import os
import sys
from datetime import date

import pytest
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

_PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from kostennote.billing.calculator import build_invoice_data  # noqa: E402
from kostennote.billing.records import case_record_from_row  # noqa: E402
from kostennote.core.config import DEFAULT_CONFIG  # noqa: E402

CSV_COLUMNS = [
    "Lf. Nr.", "Az. TILP", "Anrede", "Vorname1", "Nachname1",
    "Anrede2", "Vorname2", "Nachname2", "Anrede3", "Vorname3", "Nachname3",
    "Strasse", "PLZ", "Ort", "Land", "Streitwert Klage", "Gesamtstreitwert",
    "Gesamtrechnungsbetrag", "Anteil", "Einzelrechnungsbetrag", "Erhöhungsgebühr",
    "Zwischensumme", "Umsatzsteuer", "Summa", "Rechnungsnummer",
]

INVOICE_DATE = date(2025, 11, 27)


# ── PDF factories ─────────────────────────────────────────────────────────────

def make_pdf(labels, pagesize=A4) -> bytes:
    """One page per label, the label drawn as a single word."""
    buf = io.BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    for label in labels:
        c.setFont("Helvetica", 14)
        c.drawString(72, 300, label)
        c.showPage()
    c.save()
    return buf.getvalue()


def make_empty_pdf() -> bytes:
    from pypdf import PdfWriter
    buf = io.BytesIO()
    PdfWriter().write(buf)
    return buf.getvalue()


def make_rotated_pdf(labels, degrees=90) -> bytes:
    from pypdf import PdfReader, PdfWriter
    writer = PdfWriter()
    for page in PdfReader(io.BytesIO(make_pdf(labels))).pages:
        writer.add_page(page).rotate(degrees)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def make_broken_stream_pdf(pagesize=A4) -> bytes:
    """A one-page PDF that opens fine but whose content stream cannot be decoded.

    The body is not valid ASCII85, so the failure only shows once the page
    contents are read.
    """
    body = b"\xff\xff\xff\xff\xff~>"
    width, height = (int(v) for v in pagesize)
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 %d %d] "
        b"/Resources << >> /Contents 4 0 R >>" % (width, height),
        b"<< /Length %d /Filter /ASCII85Decode >>\nstream\n" % len(body)
        + body + b"\nendstream",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, obj in enumerate(objects, 1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + obj + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1, xref_at)
    return bytes(out)


def write_csv(path, rows, separator=";"):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, delimiter=separator)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: row.get(k, "") for k in CSV_COLUMNS})


@pytest.fixture
def content_pdf():
    return make_pdf(["CONTENTPAGE1", "CONTENTPAGE2", "CONTENTPAGE3"])


@pytest.fixture
def letterhead_pdf():
    return make_pdf(["LHFIRST", "LHCONT"])


# ── Directories ───────────────────────────────────────────────────────────────

@pytest.fixture
def output_dir(tmp_path):
    d = tmp_path / "output"
    d.mkdir()
    return str(d)


# ── Sample data ───────────────────────────────────────────────────────────────

@pytest.fixture
def sample_row():
    """Trimmed CSV row for a married couple, dispute value 600.000 €."""
    return {
        "Lf. Nr.": "1",
        "Az. TILP": "TILP-0815",
        "Anrede": "Herrn",
        "Vorname1": "Dr. Hans",
        "Nachname1": "Müller",
        "Anrede2": "Frau",
        "Vorname2": "Erika",
        "Nachname2": "Schmidt",
        "Anrede3": "",
        "Vorname3": "",
        "Nachname3": "",
        "Strasse": "Kaiserstraße 1",
        "PLZ": "76133",
        "Ort": "Karlsruhe",
        "Land": "Deutschland",
        "Streitwert Klage": "600.000,00",
        "Gesamtstreitwert": "12.000.000,00",
        "Gesamtrechnungsbetrag": "26.264,34",
        "Anteil": "0,05",
        "Einzelrechnungsbetrag": "1.313,22",
        "Erhöhungsgebühr": "399,78",
        "Zwischensumme": "1.713,00",
        "Umsatzsteuer": "325,47",
        "Summa": "2.038,47",
        "Rechnungsnummer": "2025-0001",
    }


@pytest.fixture
def sample_record(sample_row):
    return case_record_from_row(sample_row)


@pytest.fixture
def sample_invoice(sample_record):
    return build_invoice_data(sample_record, DEFAULT_CONFIG, today=INVOICE_DATE)


@pytest.fixture
def no_signature_config():
    """Default config with the signature image switched off."""
    import copy
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["generator"]["signature_image"] = ""
    return cfg
