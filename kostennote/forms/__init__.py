"""Invoice PDF rendering and letterhead composition.

Key exports:
    InvoiceRenderer        - InvoiceData → invoice PDF bytes (reportlab)
    compose()              - Stamp invoice pages onto the letterhead (pypdf)
    load_letterhead()      - Read the letterhead PDF, None when missing
"""
