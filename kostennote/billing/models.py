"""Data model for case records, amount breakdowns and invoice data.

All value objects are frozen; an AmountBreakdown is created once per case
record and flows unchanged into rendering.
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class ParsedNumber:
    """Result of parsing a localized number. ``invalid`` marks the zero fallback."""
    value: Decimal
    invalid: bool = False
    raw: str = ""


# ─── Input ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Person:
    salutation: str = ""
    first_name: str = ""
    last_name: str = ""


@dataclass(frozen=True)
class SheetFigures:
    """Figures the source spreadsheet already computed; passed through as-is."""
    total_dispute_value: Decimal = ZERO
    total_invoice_amount: Decimal = ZERO
    share: Decimal = ZERO
    single_invoice_amount: Decimal = ZERO
    increase_fee: Decimal = ZERO
    intermediate_sum: Decimal = ZERO
    vat: Decimal = ZERO
    grand_total: Decimal = ZERO


@dataclass(frozen=True)
class CaseRecord:
    lf_nr: str
    invoice_number: str
    dispute_value: Decimal
    persons: Tuple[Person, ...] = ()
    street: str = ""
    zip_code: str = ""
    city: str = ""
    country: str = ""
    file_reference: str = ""
    sheet: SheetFigures = field(default_factory=SheetFigures)
    invalid_fields: Tuple[str, ...] = ()

    @property
    def last_names(self) -> Tuple[str, ...]:
        return tuple(p.last_name for p in self.persons if p.last_name)


# ─── Calculator output ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Fees:
    banded_fee: Decimal
    procedure_fee: Decimal
    hearing_fee: Decimal
    settlement_fee: Decimal


@dataclass(frozen=True)
class Expenses:
    flat_allowance: Decimal
    surcharge: Decimal


@dataclass(frozen=True)
class CashOutlays:
    copies: Decimal
    telecommunication: Decimal
    court_costs: Decimal


@dataclass(frozen=True)
class CalculationResult:
    subtotal_fees: Decimal
    subtotal_expenses: Decimal
    subtotal_outlays: Decimal   # exposed, not part of pre_tax_total
    pre_tax_total: Decimal
    tax: Decimal
    post_tax_total: Decimal


@dataclass(frozen=True)
class AmountBreakdown:
    band: int
    fees: Fees
    expenses: Expenses
    outlays: CashOutlays
    result: CalculationResult


# ─── Invoice composite ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class SenderInfo:
    name: str
    street: str
    zip_city: str
    vat_id: str
    iban: str
    signatory: str


@dataclass(frozen=True)
class RecipientInfo:
    salutation: str
    name: str
    street: str
    zip_code: str
    city: str
    country: str


@dataclass(frozen=True)
class CaseDetails:
    invoice_number: str
    date: str
    file_number: str
    service_period: str
    client: str
    party1: str
    party2: str
    file_reference: str = ""


@dataclass(frozen=True)
class InvoiceData:
    lf_nr: str
    sender: SenderInfo
    recipient: RecipientInfo
    case: CaseDetails
    dispute_value: Decimal
    amounts: AmountBreakdown
    tax_rate: Decimal
    last_names: Tuple[str, ...] = ()
    sheet: Optional[SheetFigures] = None

    @property
    def invoice_id(self) -> str:
        return self.case.invoice_number or self.lf_nr

    @property
    def has_second_recipient(self) -> bool:
        return len(self.last_names) > 1

    def to_template_record(self) -> Dict[str, Any]:
        """Flat top level, named nested sections. Values stay Decimal."""
        return {
            "lf_nr": self.lf_nr,
            "sender": asdict(self.sender),
            "recipient": asdict(self.recipient),
            "case": asdict(self.case),
            "dispute_value": self.dispute_value,
            "tax_rate": self.tax_rate,
            "band": self.amounts.band,
            "fees": asdict(self.amounts.fees),
            "expenses": asdict(self.amounts.expenses),
            "outlays": asdict(self.amounts.outlays),
            "totals": asdict(self.amounts.result),
            "sheet": asdict(self.sheet) if self.sheet else {},
            "last_names": list(self.last_names),
            "has_second_recipient": self.has_second_recipient,
        }
