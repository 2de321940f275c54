"""
Kostennote - Letterhead-Branded Legal Fee Invoices

Packages:
    core/       Shared configuration, paths, and error types
    billing/    CSV case records and the fee/amount calculator
    forms/      Invoice PDF rendering and letterhead composition

Modules:
    batch       Per-invoice render → stamp → save pipeline
    cli         Command line entry point (``kostennote``)
"""

__version__ = "1.0.0"
