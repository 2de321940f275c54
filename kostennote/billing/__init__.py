"""CSV case records and the fee/amount calculator.

Key exports:
    read_case_records()    - Parse the case CSV into CaseRecord objects
    compute()              - CaseRecord → AmountBreakdown
    build_invoice_data()   - Merge amounts with sender/recipient/case details
"""
