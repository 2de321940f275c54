"""
Tests for forms/letterhead.py: page mapping, sizes, error paths.
"""
import io

import pytest
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4, A5, letter

from kostennote.core.errors import DocumentDecodeError, ErrorType, LetterheadPageError
from kostennote.forms.letterhead import (
    compose, letterhead_page_index, load_letterhead, page_count,
)

from conftest import make_broken_stream_pdf, make_empty_pdf, make_pdf, make_rotated_pdf


def _texts(data):
    return [page.extract_text() for page in PdfReader(io.BytesIO(data)).pages]


def _size(data, index=0):
    box = PdfReader(io.BytesIO(data)).pages[index].mediabox
    return float(box.width), float(box.height)


# ═══════════════════════════════════════════════════════════════════════════════
# Page mapping
# ═══════════════════════════════════════════════════════════════════════════════

class TestPageIndex:

    @pytest.mark.parametrize("content_index,pages,expected", [
        (0, 2, 0),
        (1, 2, 1),
        (5, 2, 1),
        (0, 1, 0),
        (1, 1, 0),
        (3, 4, 1),
    ])
    def test_mapping(self, content_index, pages, expected):
        assert letterhead_page_index(content_index, pages) == expected

    def test_empty_letterhead_has_no_valid_index(self):
        assert letterhead_page_index(1, 0) == -1


# ═══════════════════════════════════════════════════════════════════════════════
# compose()
# ═══════════════════════════════════════════════════════════════════════════════

class TestCompose:

    def test_pass_through_without_letterhead(self, content_pdf):
        assert compose(content_pdf, None) is content_pdf

    def test_first_and_continuation_pages(self, content_pdf, letterhead_pdf):
        texts = _texts(compose(content_pdf, letterhead_pdf))
        assert len(texts) == 3
        assert "LHFIRST" in texts[0] and "CONTENTPAGE1" in texts[0]
        assert "LHCONT" in texts[1] and "CONTENTPAGE2" in texts[1]
        assert "LHCONT" in texts[2] and "CONTENTPAGE3" in texts[2]
        assert "LHFIRST" not in texts[1]

    def test_single_page_letterhead_reused(self):
        content = make_pdf(["CONTENTPAGE1", "CONTENTPAGE2"])
        texts = _texts(compose(content, make_pdf(["LHFIRST"])))
        assert all("LHFIRST" in t for t in texts)

    def test_page_count_preserved(self, letterhead_pdf):
        for n in (1, 2, 5):
            content = make_pdf([f"CONTENTPAGE{i}" for i in range(n)])
            assert page_count(compose(content, letterhead_pdf)) == n

    def test_output_takes_letterhead_size(self, letterhead_pdf):
        content = make_pdf(["CONTENTPAGE1"], pagesize=letter)
        width, height = _size(compose(content, letterhead_pdf))
        assert width == pytest.approx(A4[0], abs=0.01)
        assert height == pytest.approx(A4[1], abs=0.01)

    def test_smaller_content_keeps_natural_size(self, letterhead_pdf):
        content = make_pdf(["CONTENTPAGE1"], pagesize=A5)
        out = compose(content, letterhead_pdf)
        assert _size(out) == pytest.approx(A4, abs=0.01)
        assert "CONTENTPAGE1" in _texts(out)[0]

    def test_rotated_content_is_turned_upright(self, letterhead_pdf):
        out = compose(make_rotated_pdf(["CONTENTPAGE1"]), letterhead_pdf)
        page = PdfReader(io.BytesIO(out)).pages[0]
        assert page.rotation == 0
        assert _size(out) == pytest.approx(A4, abs=0.01)
        assert "LHFIRST" in page.extract_text()

    def test_rotated_letterhead_sets_page_size(self):
        out = compose(make_pdf(["CONTENTPAGE1"]), make_rotated_pdf(["LHFIRST"]))
        assert _size(out) == pytest.approx((A4[1], A4[0]), abs=0.01)

    def test_composing_twice_keeps_page_count(self, content_pdf, letterhead_pdf):
        once = compose(content_pdf, letterhead_pdf)
        twice = compose(once, letterhead_pdf)
        assert page_count(twice) == page_count(content_pdf)
        assert "LHFIRST" in _texts(twice)[0]


# ═══════════════════════════════════════════════════════════════════════════════
# Error paths
# ═══════════════════════════════════════════════════════════════════════════════

class TestComposeErrors:

    def test_undecodable_content(self, letterhead_pdf):
        with pytest.raises(DocumentDecodeError) as exc:
            compose(b"not a pdf at all", letterhead_pdf, invoice_id="2025-0001")
        assert exc.value.invoice_id == "2025-0001"
        assert exc.value.details["role"] == "content"
        assert exc.value.recoverable is True

    def test_undecodable_letterhead(self, content_pdf):
        with pytest.raises(DocumentDecodeError) as exc:
            compose(content_pdf, b"%PDF-garbage")
        assert exc.value.error_type is ErrorType.DOCUMENT_DECODE_FAILED
        assert exc.value.details["role"] == "letterhead"

    def test_content_stream_fails_during_merge(self, letterhead_pdf):
        broken = make_broken_stream_pdf()
        assert page_count(broken) == 1
        with pytest.raises(DocumentDecodeError) as exc:
            compose(broken, letterhead_pdf, invoice_id="2025-0001")
        assert exc.value.invoice_id == "2025-0001"
        assert exc.value.details["role"] == "content"

    def test_letterhead_stream_fails_during_merge(self, content_pdf):
        with pytest.raises(DocumentDecodeError) as exc:
            compose(content_pdf, make_broken_stream_pdf(), invoice_id="2025-0001")
        assert exc.value.invoice_id == "2025-0001"
        assert exc.value.details["role"] == "letterhead"

    def test_zero_page_letterhead(self, content_pdf):
        with pytest.raises(LetterheadPageError) as exc:
            compose(content_pdf, make_empty_pdf(), invoice_id="R-7")
        assert exc.value.invoice_id == "R-7"
        assert exc.value.details == {"pages": 0}


class TestLoadLetterhead:

    def test_missing_file_returns_none(self, tmp_path, caplog):
        assert load_letterhead(str(tmp_path / "briefkopf.pdf")) is None
        assert "not found" in caplog.text

    def test_empty_path_returns_none(self):
        assert load_letterhead("") is None

    def test_reads_bytes(self, tmp_path, letterhead_pdf):
        path = tmp_path / "briefkopf.pdf"
        path.write_bytes(letterhead_pdf)
        assert load_letterhead(str(path)) == letterhead_pdf
