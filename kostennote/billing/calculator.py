"""
Fee / Amount Calculator
=======================
CaseRecord → AmountBreakdown. Pure: no I/O, no shared state.

Every intermediate amount is rounded to cents (ROUND_HALF_UP) before it
feeds the next step. Rounding only at the end gives different totals.

Pipeline:
    band      = ceil((dispute_value - threshold) / band_size)
    fee       = round2((base + band * step) * multiplier)
    surcharge = round2(procedure_fee * surcharge_rate)
    pre_tax   = round2(fee + allowance)
    pre_tax   = round2(pre_tax + surcharge)
    tax       = round2(pre_tax * tax_rate)
    post_tax  = round2(pre_tax + tax)

The cash outlays subtotal is computed and exposed but is not part of the
pre-tax total.
"""

from datetime import date
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Optional, Tuple

from kostennote.billing.models import (
    AmountBreakdown, CalculationResult, CaseDetails, CaseRecord, CashOutlays,
    Expenses, Fees, InvoiceData, RecipientInfo, SenderInfo,
)
from kostennote.billing.records import build_recipient_name, build_salutation, format_german_date
from kostennote.core.config import DEFAULT_CONFIG
from kostennote.core.errors import InvoiceValidationError


CENT = Decimal("0.01")


def money(value) -> Decimal:
    """Exact Decimal from config values (str, int, float or Decimal)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value) -> Decimal:
    return money(value).quantize(CENT, rounding=ROUND_HALF_UP)


# ═══════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════

def fee_band(dispute_value, bands: dict) -> int:
    """Number of started bands above the threshold.

    A value exactly on a band boundary stays in the lower band; one cent
    over moves up. Values below the threshold give zero or negative bands.
    """
    excess = money(dispute_value) - money(bands["threshold"])
    return int((excess / money(bands["band_size"])).to_integral_value(rounding=ROUND_CEILING))


def banded_fee(dispute_value, bands: dict) -> Tuple[int, Decimal]:
    """Returns (band, fee) with fee = round2((base + band*step) * multiplier)."""
    band = fee_band(dispute_value, bands)
    fee = (money(bands["base"]) + band * money(bands["step"])) * money(bands["multiplier"])
    return band, round2(fee)


def accumulate_totals(subtotal_fees, allowance, surcharge, tax_rate) -> Tuple[Decimal, Decimal, Decimal]:
    """Pre-tax, tax and post-tax total, each step rounded before the next.

    Returns:
        (pre_tax_total, tax, post_tax_total)
    """
    pre_tax = round2(money(subtotal_fees) + money(allowance))
    pre_tax = round2(pre_tax + money(surcharge))
    tax = round2(pre_tax * money(tax_rate))
    post_tax = round2(pre_tax + tax)
    return pre_tax, tax, post_tax


# ═══════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════

def compute(record: CaseRecord, config: Optional[dict] = None) -> AmountBreakdown:
    """Compute the full amount breakdown for one case record.

    Never fails for a well-typed record; negative dispute values simply
    produce small or negative fees.
    """
    config = config or DEFAULT_CONFIG
    schedule = config["fee_schedule"]
    tax_rate = money(config["generator"]["tax_rate"])

    band, fee = banded_fee(record.dispute_value, config["fee_bands"])

    fees = Fees(
        banded_fee=fee,
        procedure_fee=round2(schedule["procedure_fee"]),
        hearing_fee=round2(schedule["hearing_fee"]),
        settlement_fee=round2(schedule["settlement_fee"]),
    )
    expenses = Expenses(
        flat_allowance=round2(schedule["flat_allowance"]),
        surcharge=round2(fees.procedure_fee * money(schedule["surcharge_rate"])),
    )
    outlays = CashOutlays(
        copies=round2(schedule["copies"]),
        telecommunication=round2(schedule["telecommunication"]),
        court_costs=round2(schedule["court_costs"]),
    )

    pre_tax, tax, post_tax = accumulate_totals(
        fees.banded_fee, expenses.flat_allowance, expenses.surcharge, tax_rate)

    result = CalculationResult(
        subtotal_fees=fees.banded_fee,
        subtotal_expenses=round2(expenses.flat_allowance + expenses.surcharge),
        subtotal_outlays=round2(outlays.copies + outlays.telecommunication + outlays.court_costs),
        pre_tax_total=pre_tax,
        tax=tax,
        post_tax_total=post_tax,
    )
    return AmountBreakdown(band=band, fees=fees, expenses=expenses, outlays=outlays, result=result)


def build_invoice_data(record: CaseRecord, config: Optional[dict] = None,
                       today: Optional[date] = None) -> InvoiceData:
    """Merge the amount breakdown with sender, recipient and case details."""
    config = config or DEFAULT_CONFIG
    sender = config["sender"]
    case = config["case_details"]

    name = build_recipient_name(record.persons)
    recipient = RecipientInfo(
        salutation=build_salutation([p.salutation for p in record.persons]),
        name=name,
        street=record.street,
        zip_code=record.zip_code,
        city=record.city,
        country=record.country,
    )
    details = CaseDetails(
        invoice_number=record.invoice_number,
        date=format_german_date(today),
        file_number=case.get("file_number", ""),
        service_period=case.get("service_period", ""),
        client=name,
        party1=case.get("party1", ""),
        party2=case.get("party2", ""),
        file_reference=record.file_reference,
    )
    return InvoiceData(
        lf_nr=record.lf_nr,
        sender=SenderInfo(
            name=sender["name"],
            street=sender["street"],
            zip_city=sender["zip_city"],
            vat_id=sender["vat_id"],
            iban=sender["iban"],
            signatory=sender["signatory"],
        ),
        recipient=recipient,
        case=details,
        dispute_value=record.dispute_value,
        amounts=compute(record, config),
        tax_rate=money(config["generator"]["tax_rate"]),
        last_names=record.last_names,
        sheet=record.sheet,
    )


REQUIRED_FIELDS = {
    "invoice_number": lambda inv: inv.case.invoice_number,
    "name":           lambda inv: inv.recipient.name,
    "street":         lambda inv: inv.recipient.street,
    "zip_code":       lambda inv: inv.recipient.zip_code,
    "city":           lambda inv: inv.recipient.city,
    "post_tax_total": lambda inv: inv.amounts.result.post_tax_total,
    "date":           lambda inv: inv.case.date,
}


def validate_invoice_data(invoice: InvoiceData) -> bool:
    """Raise InvoiceValidationError on the first empty required field."""
    for name, getter in REQUIRED_FIELDS.items():
        if not getter(invoice):
            raise InvoiceValidationError(f"Missing required field: {name}",
                                         invoice_id=invoice.invoice_id)
    return True
