"""Invoice numbering, status transitions, and payment application."""

from __future__ import annotations

import re
from datetime import date

from src.app.financials.schemas import InvoiceStatus


class InvoiceStateError(Exception):
    """Raised when an invoice cannot move to the requested status."""


# Allowed status moves; paid and void are terminal
INVOICE_TRANSITIONS: dict[InvoiceStatus, tuple[InvoiceStatus, ...]] = {
    InvoiceStatus.DRAFT: (InvoiceStatus.SENT, InvoiceStatus.VOID),
    InvoiceStatus.SENT: (InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.VOID),
    InvoiceStatus.OVERDUE: (InvoiceStatus.PAID, InvoiceStatus.VOID),
    InvoiceStatus.PAID: (),
    InvoiceStatus.VOID: (),
}


def format_invoice_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:05d}"


def next_invoice_number(prefix: str, year: int, existing: list[str]) -> str:
    """Next number for year given the numbers already issued.

    Numbers that do not match <prefix>-<year>-<digits> are ignored.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
    sequences = [int(m.group(1)) for m in (pattern.match(n) for n in existing) if m]
    return format_invoice_number(prefix, year, max(sequences, default=0) + 1)


def check_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    """Raise InvoiceStateError unless current -> target is allowed.

    Re-asserting the current status is a no-op.
    """
    if current == target:
        return
    if target not in INVOICE_TRANSITIONS[current]:
        raise InvoiceStateError(
            f"Cannot change invoice from {current.value} to {target.value}"
        )


def days_overdue(due_date: date, today: date | None = None) -> int:
    """Whole days past due; 0 when not yet due."""
    today = today or date.today()
    return max((today - due_date).days, 0)


def apply_payment(
    status: InvoiceStatus,
    amount: float,
    paid_amount: float,
    payment: float,
    payment_date: date,
) -> tuple[InvoiceStatus, float, date | None]:
    """New (status, paid_amount, paid_date) after a payment lands.

    Raises:
        InvoiceStateError: If the invoice is not awaiting payment.
    """
    if status in (InvoiceStatus.DRAFT, InvoiceStatus.VOID, InvoiceStatus.PAID):
        raise InvoiceStateError(f"Cannot record a payment against a {status.value} invoice")

    new_paid = round(paid_amount + payment, 2)
    if new_paid >= amount:
        return InvoiceStatus.PAID, new_paid, payment_date
    return status, new_paid, None
