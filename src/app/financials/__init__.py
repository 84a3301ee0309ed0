"""Financial management -- invoices, payments, expenses, and financial reporting.

Provides SQLAlchemy models, Pydantic schemas, FinancialRepository for async
CRUD, date range helpers (periods.py), invoice rules (invoices.py), and the
summary / cash flow / P&L computations (reports.py).
"""
