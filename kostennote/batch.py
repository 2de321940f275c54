"""
Invoice Batch Runner
====================
Per invoice: validate → render → stamp onto letterhead → save.

One invoice failing never stops the batch. Stamping failures fall back to
saving the unstamped PDF; the outcome records which one was written.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from kostennote.billing.calculator import build_invoice_data, validate_invoice_data
from kostennote.billing.models import CaseRecord, InvoiceData
from kostennote.core import paths
from kostennote.core.errors import KostennoteError
from kostennote.forms.invoice_generator import InvoiceRenderer
from kostennote.forms.letterhead import compose, page_count

log = logging.getLogger("kostennote.batch")


@dataclass
class InvoiceOutcome:
    lf_nr: str
    invoice_number: str
    ok: bool = False
    path: str = ""
    stamped: bool = False
    pages: int = 0
    error: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "lf_nr": self.lf_nr,
            "invoice_number": self.invoice_number,
            "ok": self.ok,
            "path": self.path,
            "stamped": self.stamped,
            "pages": self.pages,
            "error": self.error,
        }


@dataclass
class BatchReport:
    outcomes: List[InvoiceOutcome] = field(default_factory=list)
    skipped_rows: int = 0

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped_rows": self.skipped_rows,
            "invoices": [o.to_dict() for o in self.outcomes],
        }


# ═══════════════════════════════════════════════════════════════════════
# Selection
# ═══════════════════════════════════════════════════════════════════════

def parse_lf_spec(spec: str) -> List[str]:
    """ "1,3-5,7" → ["1", "3", "4", "5", "7"]. Bad parts are skipped with a warning."""
    result = []
    for part in (p.strip() for p in (spec or "").split(",")):
        if not part:
            continue
        if "-" in part:
            start_s, _, end_s = part.partition("-")
            try:
                start, end = int(start_s.strip()), int(end_s.strip())
            except ValueError:
                log.warning('Invalid range "%s" - skipping', part)
                continue
            if start > end:
                log.warning('Invalid range "%s" (start > end) - skipping', part)
                continue
            result.extend(str(i) for i in range(start, end + 1))
        else:
            try:
                result.append(str(int(part)))
            except ValueError:
                log.warning('Invalid number "%s" - skipping', part)
    return result


def select_invoices(invoices: Sequence[InvoiceData], lf_numbers: Optional[Iterable[str]] = None) -> List[InvoiceData]:
    """All invoices, or those whose running number is in ``lf_numbers``."""
    if lf_numbers is None:
        return list(invoices)
    wanted = set(lf_numbers)
    return [inv for inv in invoices if inv.lf_nr.strip() in wanted]


def build_invoices(records: Iterable[CaseRecord], config: dict) -> List[InvoiceData]:
    return [build_invoice_data(r, config) for r in records]


# ═══════════════════════════════════════════════════════════════════════
# Output
# ═══════════════════════════════════════════════════════════════════════

def output_filename(invoice: InvoiceData) -> str:
    """ "{Lf. Nr.} {Nachname1} {Nachname2} {Nachname3}.pdf", slashes → underscores."""
    names = list(invoice.last_names) or [invoice.case.invoice_number]
    parts = [invoice.lf_nr] + [n.replace("/", "_") for n in names]
    return " ".join(p for p in parts if p) + ".pdf"


def save_pdf(data: bytes, invoice: InvoiceData, output_dir: str) -> str:
    paths.ensure_dirs(output_dir)
    path = os.path.join(output_dir, output_filename(invoice))
    with open(path, "wb") as f:
        f.write(data)
    return path


def stamp(content: bytes, letterhead: Optional[bytes], invoice_id: str):
    """Compose onto the letterhead, falling back to the unstamped PDF.

    Returns:
        (pdf_bytes, stamped)
    """
    if letterhead is None:
        return content, False
    try:
        return compose(content, letterhead, invoice_id=invoice_id), True
    except KostennoteError as e:
        log.error("Error stamping PDF for %s: %s. Falling back to saving without stamp.",
                  invoice_id, e, extra={"invoice_id": invoice_id, "stamped": False})
        return content, False


# ═══════════════════════════════════════════════════════════════════════
# Processing
# ═══════════════════════════════════════════════════════════════════════

def process_invoice(invoice: InvoiceData, renderer: InvoiceRenderer,
                    letterhead: Optional[bytes], output_dir: str,
                    should_stamp: bool = True) -> InvoiceOutcome:
    """Run one invoice end to end. Never raises; failures land in the outcome."""
    outcome = InvoiceOutcome(lf_nr=invoice.lf_nr, invoice_number=invoice.case.invoice_number)
    t0 = time.time()
    try:
        validate_invoice_data(invoice)
        content = renderer.render(invoice)
        data, outcome.stamped = stamp(content, letterhead if should_stamp else None, invoice.invoice_id)
        outcome.pages = page_count(data)
        outcome.path = save_pdf(data, invoice, output_dir)
        outcome.ok = True
    except KostennoteError as e:
        outcome.error = e.to_dict()
        log.error("Failed to process invoice %s: %s", invoice.invoice_id, e,
                  extra={"invoice_id": invoice.invoice_id, "lf_nr": invoice.lf_nr})
        return outcome
    except Exception as e:
        outcome.error = {"error_type": "UNKNOWN_ERROR", "message": str(e),
                         "invoice_id": invoice.invoice_id}
        log.exception("Failed to process invoice %s", invoice.invoice_id,
                      extra={"invoice_id": invoice.invoice_id, "lf_nr": invoice.lf_nr})
        return outcome

    log.info("Invoice %s complete%s: %s", invoice.invoice_id,
             "" if outcome.stamped else " (without letterhead)", outcome.path,
             extra={"invoice_id": invoice.invoice_id, "lf_nr": invoice.lf_nr,
                    "stamped": outcome.stamped, "pages": outcome.pages,
                    "total": str(invoice.amounts.result.post_tax_total),
                    "path": outcome.path,
                    "duration_ms": int((time.time() - t0) * 1000)})
    return outcome


def run_batch(invoices: Sequence[InvoiceData], renderer: InvoiceRenderer,
              letterhead: Optional[bytes], output_dir: str,
              should_stamp: bool = True, workers: int = 1) -> BatchReport:
    """Process invoices, in parallel threads when ``workers > 1``.

    Outcomes keep the input order regardless of completion order.
    """
    def _one(inv):
        return process_invoice(inv, renderer, letterhead, output_dir, should_stamp)

    if workers > 1 and len(invoices) > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="invoice") as pool:
            outcomes = list(pool.map(_one, invoices))
    else:
        outcomes = [_one(inv) for inv in invoices]
    return BatchReport(outcomes=outcomes)
