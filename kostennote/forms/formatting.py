"""Text helpers for invoice rendering (German number conventions).

Plain functions; the renderer receives them explicitly.
"""

from decimal import Decimal

_SWAP = str.maketrans({",": ".", ".": ","})


def format_currency(amount) -> str:
    """1234.56 → "1.234,56". Non-numbers are returned as text unchanged."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        return str(amount)
    return f"{amount:,.2f}".translate(_SWAP)


def format_percent(amount) -> str:
    """Share with eight decimals: 0.0125 → "0,01250000"."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
        return str(amount)
    return f"{amount:,.8f}".translate(_SWAP)


def split_lines(text) -> list:
    """Multi-line text → list of lines (the PDF equivalent of nl2br)."""
    if not text or not isinstance(text, str):
        return []
    return text.split("\n")
