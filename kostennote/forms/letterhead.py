"""
Letterhead Composer
===================
Lays every page of a rendered invoice onto the firm's letterhead
(Briefkopf). The letterhead PDF has two page roles:

    page 0  first page (logo, full address block)
    page 1  continuation page; if missing, page 0 is reused

Bytes in, bytes out. No filesystem access apart from ``load_letterhead``,
which callers use to fetch the template once per run.
"""

import io
import logging
import os
import zlib
from typing import Optional

from pypdf import PdfReader, PdfWriter, Transformation
from pypdf.errors import PdfReadError

from kostennote.core.errors import DocumentDecodeError, LetterheadPageError

log = logging.getLogger("kostennote.letterhead")

FIRST_PAGE = 0
CONTINUATION_PAGE = 1

# Raised by pypdf while decoding page content streams (filters, operators).
_STREAM_ERRORS = (PdfReadError, ValueError, KeyError, TypeError, zlib.error)


def letterhead_page_index(content_index: int, letterhead_pages: int) -> int:
    """Letterhead page for a content page: 0 for the first, else min(1, count - 1)."""
    if content_index == 0:
        return FIRST_PAGE
    return min(CONTINUATION_PAGE, letterhead_pages - 1)


def _decode(data: bytes, role: str, invoice_id: Optional[str]) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(data))
        len(reader.pages)  # forces the page tree to load
    except Exception as e:
        raise DocumentDecodeError(f"Could not decode {role} PDF: {e}",
                                  invoice_id=invoice_id, details={"role": role}) from e
    return reader


def _to_origin(page) -> Transformation:
    """Shift a page so its media box starts at (0, 0)."""
    box = page.mediabox
    return Transformation().translate(tx=-float(box.left), ty=-float(box.bottom))


def _decode_error(role: str, invoice_id: Optional[str], e: Exception) -> DocumentDecodeError:
    return DocumentDecodeError(f"Could not decode {role} page: {e}",
                               invoice_id=invoice_id, details={"role": role})


def _upright(page, role: str, invoice_id: Optional[str]):
    """Bake /Rotate into the content stream so the media box is what gets drawn."""
    if not page.rotation:
        return page
    try:
        page.transfer_rotation_to_content()
    except _STREAM_ERRORS as e:
        raise _decode_error(role, invoice_id, e) from e
    return page


def _merge(target, page, role: str, invoice_id: Optional[str]) -> None:
    """Draw ``page`` onto ``target``. Content streams are only decoded here."""
    try:
        target.merge_transformed_page(page, _to_origin(page))
    except _STREAM_ERRORS as e:
        raise _decode_error(role, invoice_id, e) from e


def page_count(data: bytes) -> int:
    """Number of pages in a PDF byte string."""
    return len(_decode(data, "document", None).pages)


def compose(content: bytes, letterhead: Optional[bytes] = None,
            invoice_id: Optional[str] = None) -> bytes:
    """Stamp every content page onto the matching letterhead page.

    Args:
        content: Rendered invoice PDF.
        letterhead: Letterhead PDF, or None to pass ``content`` through unchanged.
        invoice_id: Carried on raised errors for batch reporting.

    Returns:
        New PDF bytes. Each output page has the letterhead page's size, the
        letterhead drawn first and the content page on top at its natural size.
        Pages carrying /Rotate are turned upright before merging.

    Raises:
        DocumentDecodeError: either PDF could not be decoded, on opening or
            when a page content stream is read during the merge.
        LetterheadPageError: the letterhead has no page to use.
    """
    if letterhead is None:
        return content

    content_pdf = _decode(content, "content", invoice_id)
    letterhead_pdf = _decode(letterhead, "letterhead", invoice_id)
    templates = [_upright(t, "letterhead", invoice_id) for t in letterhead_pdf.pages]

    writer = PdfWriter()
    for i, page in enumerate(content_pdf.pages):
        idx = letterhead_page_index(i, len(templates))
        if not 0 <= idx < len(templates):
            raise LetterheadPageError(
                f"Letterhead PDF does not have a page at index {idx}",
                invoice_id=invoice_id, details={"pages": len(templates)})
        template = templates[idx]
        page = _upright(page, "content", invoice_id)

        out = writer.add_blank_page(width=float(template.mediabox.width),
                                    height=float(template.mediabox.height))
        _merge(out, template, "letterhead", invoice_id)   # background
        _merge(out, page, "content", invoice_id)          # foreground

    buf = io.BytesIO()
    try:
        writer.write(buf)
    except _STREAM_ERRORS as e:
        raise DocumentDecodeError(f"Could not encode composed PDF: {e}",
                                  invoice_id=invoice_id, details={"role": "composed"}) from e
    log.debug("Composed %d page(s) onto letterhead (%d template pages)",
              len(content_pdf.pages), len(templates),
              extra={"invoice_id": invoice_id, "pages": len(content_pdf.pages)})
    return buf.getvalue()


def load_letterhead(path: Optional[str]) -> Optional[bytes]:
    """Read the letterhead PDF; None (with a warning) when it is not there."""
    if not path or not os.path.exists(path):
        log.warning("Letterhead PDF (%s) not found. Invoices will be saved without letterhead.", path)
        return None
    with open(path, "rb") as f:
        return f.read()
