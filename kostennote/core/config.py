"""
Invoice generator configuration.

Defaults live in the module-level dicts below. A JSON file at
``paths.CONFIG_PATH`` (or the path handed to ``load_config``) is deep-merged
on top, so a firm only has to override the keys it cares about:

    {"sender": {"iban": "DE00 0000 0000 0000 0000 00"},
     "generator": {"tax_rate": "0.19"}}

Money values are kept as strings so they convert to Decimal exactly.
"""

import copy
import json
import logging
import os
from typing import Optional

from kostennote.core import paths

log = logging.getLogger("kostennote.config")

# ═══════════════════════════════════════════════════════════════════════════════
# SENDER - law firm issuing the invoices
# ═══════════════════════════════════════════════════════════════════════════════
SENDER = {
    "name":       "Siegmann | Höger",
    "street":     "Hübschstraße 21",
    "zip_city":   "76131 Karlsruhe",
    "vat_id":     "DE455775429",
    "iban":       "DE54 6604 0018 0366 0560 00",
    "signatory":  "Prof. Dr. Siegmann",
}

# ═══════════════════════════════════════════════════════════════════════════════
# CASE DETAILS - shared by every invoice of one mass proceeding
# ═══════════════════════════════════════════════════════════════════════════════
CASE_DETAILS = {
    "service_period": "06.03.-25.11.2025",
    "file_number":    "SH 072/25",
    "party1":         "Dipl.-Kfm. Ebert u.a.",
    "party2":         "Dr. Braun u.a.",
}

# ═══════════════════════════════════════════════════════════════════════════════
# FEE SCHEDULE - fixed positions (Gebühren, Auslagen, Barauslagen)
# ═══════════════════════════════════════════════════════════════════════════════
FEE_SCHEDULE = {
    "procedure_fee":      "1332.60",   # Verfahrensgebühr, also the surcharge base
    "hearing_fee":        "1229.64",   # Terminsgebühr
    "settlement_fee":     "307.41",    # Einigungsgebühr
    "flat_allowance":     "20.00",     # Post- und Telekommunikationspauschale
    "surcharge_rate":     "0.3",       # Erhöhungsgebühr, Nr. 1008 VV RVG
    "copies":             "180.00",
    "telecommunication":  "120.00",
    "court_costs":        "450.00",
}

# ═══════════════════════════════════════════════════════════════════════════════
# FEE BANDS - RVG table above the top threshold: +step per started band
# ═══════════════════════════════════════════════════════════════════════════════
FEE_BANDS = {
    "base":       "3539",
    "step":       "165",
    "band_size":  "50000",
    "threshold":  "500000",
    "multiplier": "2.3",
}

GENERATOR = {
    "input_csv":        paths.INPUT_CSV_PATH,
    "letterhead_pdf":   paths.LETTERHEAD_PATH,
    "output_dir":       paths.OUTPUT_DIR,
    "csv_separator":    ";",
    "tax_rate":         "0.19",
    "signature_image":  paths.SIGNATURE_PATH,
    "signature_height": 50,
}

DEFAULT_CONFIG = {
    "sender": SENDER,
    "case_details": CASE_DETAILS,
    "fee_schedule": FEE_SCHEDULE,
    "fee_bands": FEE_BANDS,
    "generator": GENERATOR,
}


def _deep_merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = None) -> dict:
    """Return the effective config: defaults deep-merged with a JSON override.

    Args:
        path: Override file. Defaults to ``paths.CONFIG_PATH``; a missing
              default file is fine, a missing explicit file is logged.

    Raises:
        json.JSONDecodeError: the override file exists but is not valid JSON.
    """
    explicit = path is not None
    path = path or paths.CONFIG_PATH
    if not os.path.exists(path):
        if explicit:
            log.warning("Config file %s not found, using defaults", path)
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(path, encoding="utf-8") as f:
        override = json.load(f)
    log.info("Loaded config overrides from %s (%s)", path, ", ".join(sorted(override)))
    return _deep_merge(DEFAULT_CONFIG, override)
