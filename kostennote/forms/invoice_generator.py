"""
Kostennote PDF Renderer
=======================
Renders an InvoiceData into a paginated A4 invoice PDF (bytes).

The page carries content only: logo, firm address bar and footer come
from the letterhead the composer lays underneath. The first page leaves
more room at the top than continuation pages, matching the two letterhead
variants.

Usage:
    from kostennote.forms.invoice_generator import InvoiceRenderer
    pdf_bytes = InvoiceRenderer(config).render(invoice)
"""

import io
import logging
import os
from collections import namedtuple
from typing import Callable, List, Optional

from PIL import Image
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from kostennote.billing.models import InvoiceData
from kostennote.core.config import DEFAULT_CONFIG
from kostennote.core.errors import RenderError
from kostennote.forms.formatting import format_currency, format_percent, split_lines

log = logging.getLogger("kostennote.invoice_gen")

# ── Colors ──
BLACK = HexColor("#000000")
GRAY = HexColor("#555555")
RULE = HexColor("#46468D")

# ── Geometry ──
MARGIN_L = 25 * mm
MARGIN_R = 20 * mm
TOP_FIRST = 45 * mm    # below the first-page letterhead logo
TOP_CONT = 35 * mm
MARGIN_B = 20 * mm     # above the letterhead footer

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"

# kind: sender | address | text | meta | title | heading | row | subtotal | total | gap | signature
Block = namedtuple("Block", "kind left right height")


def _gap(height=12):
    return Block("gap", "", "", height)


class InvoiceRenderer:
    """Turns InvoiceData into PDF bytes.

    Formatting helpers are injected, not registered globally, so two
    renderers with different conventions can run side by side.
    """

    def __init__(self, config: Optional[dict] = None, page_size=A4,
                 currency: Callable = format_currency, percent: Callable = format_percent):
        self.config = config or DEFAULT_CONFIG
        self.page_size = page_size
        self.currency = currency
        self.percent = percent
        gen = self.config["generator"]
        self.signature_image = gen.get("signature_image") or ""
        self.signature_height = float(gen.get("signature_height", 50))

    @property
    def content_width(self) -> float:
        return self.page_size[0] - MARGIN_L - MARGIN_R

    def eur(self, amount) -> str:
        return f"{self.currency(amount)} €"

    # ── Layout ────────────────────────────────────────────────────────────────

    def _wrap(self, text: str, kind="text", font=FONT, size=10, leading=13) -> List[Block]:
        lines = simpleSplit(text, font, size, self.content_width)
        return [Block(kind, line, "", leading) for line in lines]

    def _share_lines(self, sheet: dict) -> List[Block]:
        """Share of the joint claim as precomputed in the case list; nothing when absent."""
        if not sheet or not sheet.get("total_dispute_value"):
            return []
        return self._wrap(
            f"Anteil {self.percent(sheet['share'])} am Gesamtstreitwert von "
            f"{self.eur(sheet['total_dispute_value'])} (Gesamtrechnungsbetrag "
            f"{self.eur(sheet['total_invoice_amount'])}, Einzelrechnungsbetrag "
            f"{self.eur(sheet['single_invoice_amount'])})")

    def layout(self, inv: InvoiceData) -> List[Block]:
        """Flat list of blocks, top to bottom, before pagination."""
        s, r, c, a = inv.sender, inv.recipient, inv.case, inv.amounts
        res = a.result
        rec = inv.to_template_record()
        multiplier = self.config["fee_bands"]["multiplier"]
        rate_pct = (inv.tax_rate * 100).normalize()
        sender_city = s.zip_city.split(" ", 1)[-1]

        blocks = [Block("sender", f"{s.name} · {s.street} · {s.zip_city}", "", 16)]
        for line in [r.salutation, *split_lines(r.name), r.street, f"{r.zip_code} {r.city}".strip(), r.country]:
            if line and line.strip():
                blocks.append(Block("address", line.strip(), "", 13))
        blocks.append(_gap(20))

        blocks.append(Block("text", "", f"{sender_city}, {c.date}", 13))
        meta = [
            ("Rechnungsnummer:", c.invoice_number),
            ("Unser Zeichen:", c.file_number),
            ("Ihr Zeichen:", c.file_reference),
            ("Leistungszeitraum:", c.service_period),
            ("USt-IdNr.:", s.vat_id),
        ]
        blocks += [Block("meta", label, value, 12) for label, value in meta if value]
        blocks.append(_gap(14))

        blocks.append(Block("title", "Kostennote", "", 24))
        if c.party1 or c.party2:
            blocks += self._wrap(f"In Sachen {c.party1} ./. {c.party2}")
        client_label = "Mandanten" if rec["has_second_recipient"] else "Mandant"
        blocks += self._wrap(f"{client_label}: {c.client.replace(chr(10), ' ')}")
        blocks += self._wrap(f"Gegenstandswert: {self.eur(inv.dispute_value)}")
        blocks += self._share_lines(rec["sheet"])
        blocks.append(_gap(10))

        blocks.append(Block("heading", "Gebühren", "", 16))
        blocks.append(Block("row", f"{str(multiplier).replace('.', ',')} Geschäftsgebühr, Nr. 2300 VV RVG",
                            self.eur(a.fees.banded_fee), 14))
        blocks.append(Block("subtotal", "Zwischensumme Gebühren", self.eur(res.subtotal_fees), 16))
        blocks.append(Block("heading", "Auslagen", "", 16))
        blocks.append(Block("row", "Post- und Telekommunikationspauschale, Nr. 7002 VV RVG",
                            self.eur(a.expenses.flat_allowance), 14))
        blocks.append(Block("row", "Erhöhungsgebühr, Nr. 1008 VV RVG",
                            self.eur(a.expenses.surcharge), 14))
        blocks.append(Block("subtotal", "Zwischensumme Auslagen", self.eur(res.subtotal_expenses), 16))
        blocks.append(Block("row", "Barauslagen (nachrichtlich, nicht in der Summe enthalten)",
                            self.eur(res.subtotal_outlays), 14))
        blocks.append(_gap(8))
        blocks.append(Block("subtotal", "Nettobetrag", self.eur(res.pre_tax_total), 16))
        blocks.append(Block("row", f"{rate_pct:f}".replace(".", ",") + " % Umsatzsteuer, Nr. 7008 VV RVG",
                            self.eur(res.tax), 14))
        blocks.append(Block("total", "Gesamtbetrag", self.eur(res.post_tax_total), 22))
        blocks.append(_gap(12))

        blocks += self._wrap(
            f"Bitte überweisen Sie den Gesamtbetrag von {self.eur(res.post_tax_total)} "
            f"unter Angabe der Rechnungsnummer {c.invoice_number} auf das Konto "
            f"IBAN {s.iban}.")
        blocks.append(_gap(12))
        blocks.append(Block("text", "Mit freundlichen Grüßen", "", 13))
        blocks.append(Block("signature", s.signatory, "", self.signature_height + 16))
        return blocks

    def paginate(self, blocks: List[Block]) -> List[List[Block]]:
        """Greedy fill; every page takes at least one block."""
        page_h = self.page_size[1]
        pages, current, used = [], [], 0.0
        for block in blocks:
            top = TOP_FIRST if not pages else TOP_CONT
            available = page_h - top - MARGIN_B
            if current and used + block.height > available:
                pages.append(current)
                current, used = [], 0.0
            if not current and block.kind == "gap":
                continue
            current.append(block)
            used += block.height
        if current:
            pages.append(current)
        return pages

    # ── Drawing ───────────────────────────────────────────────────────────────

    def _draw_signature(self, c, y):
        path = self.signature_image
        if path and os.path.exists(path):
            try:
                img = Image.open(path)
                aspect = img.size[0] / img.size[1]
                h = self.signature_height
                c.drawImage(ImageReader(img), MARGIN_L, y - h, width=h * aspect, height=h, mask="auto")
            except Exception as e:
                log.warning("Could not draw signature image %s: %s", path, e)

    def _draw_block(self, c, block: Block, y: float) -> float:
        right_x = self.page_size[0] - MARGIN_R
        kind = block.kind
        c.setFillColor(BLACK)

        if kind == "sender":
            c.setFont(FONT, 7)
            c.setFillColor(GRAY)
            c.drawString(MARGIN_L, y - 9, block.left)
            c.setStrokeColor(GRAY)
            c.setLineWidth(0.3)
            c.line(MARGIN_L, y - 11, MARGIN_L + c.stringWidth(block.left, FONT, 7), y - 11)
        elif kind in ("address", "text"):
            c.setFont(FONT, 10)
            if block.left:
                c.drawString(MARGIN_L, y - 10, block.left)
            if block.right:
                c.drawRightString(right_x, y - 10, block.right)
        elif kind == "meta":
            c.setFont(FONT, 9)
            c.drawString(MARGIN_L, y - 9, block.left)
            c.drawString(MARGIN_L + 35 * mm, y - 9, block.right)
        elif kind == "title":
            c.setFont(FONT_BOLD, 16)
            c.drawString(MARGIN_L, y - 17, block.left)
        elif kind == "heading":
            c.setFont(FONT_BOLD, 10)
            c.drawString(MARGIN_L, y - 12, block.left)
        elif kind == "row":
            c.setFont(FONT, 10)
            c.drawString(MARGIN_L + 4 * mm, y - 10, block.left)
            c.drawRightString(right_x, y - 10, block.right)
        elif kind in ("subtotal", "total"):
            bold = kind == "total"
            c.setStrokeColor(RULE)
            c.setLineWidth(1.0 if bold else 0.5)
            c.line(right_x - 45 * mm, y - 1, right_x, y - 1)
            c.setFont(FONT_BOLD if bold else FONT, 11 if bold else 10)
            c.drawString(MARGIN_L, y - 13, block.left)
            c.drawRightString(right_x, y - 13, block.right)
        elif kind == "signature":
            self._draw_signature(c, y)
            c.setFont(FONT, 10)
            c.drawString(MARGIN_L, y - block.height + 4, block.left)
        return y - block.height

    def _draw_footer(self, c, page_num, total_pages):
        if total_pages < 2:
            return
        c.setFont(FONT, 8)
        c.setFillColor(GRAY)
        c.drawRightString(self.page_size[0] - MARGIN_R, MARGIN_B - 14,
                          f"Seite {page_num} von {total_pages}")

    def render(self, inv: InvoiceData) -> bytes:
        """Render the invoice. Raises RenderError with the invoice id on failure."""
        try:
            pages = self.paginate(self.layout(inv))
            buf = io.BytesIO()
            c = canvas.Canvas(buf, pagesize=self.page_size)
            c.setTitle(f"Kostennote {inv.case.invoice_number}")
            c.setAuthor(inv.sender.name)

            for page_num, blocks in enumerate(pages, 1):
                y = self.page_size[1] - (TOP_FIRST if page_num == 1 else TOP_CONT)
                for block in blocks:
                    y = self._draw_block(c, block, y)
                self._draw_footer(c, page_num, len(pages))
                c.showPage()

            c.save()
        except Exception as e:
            raise RenderError(f"PDF rendering failed: {e}", invoice_id=inv.invoice_id) from e

        log.info("Invoice %s rendered (%d pages)", inv.invoice_id, len(pages),
                 extra={"invoice_id": inv.invoice_id, "pages": len(pages)})
        return buf.getvalue()
