"""Proposal workflow rules -- totals and approval state transitions.

Pure functions used by the repository and the API layer. Transitions:

    draft --submit--> pending_approval --approve--> approved
                                       --reject---> rejected --edit--> draft
"""

from __future__ import annotations

from src.app.campaigns.schemas import ApprovalStatus, ProposalItem, ProposalTotals


class ProposalStateError(Exception):
    """Raised when a proposal action is not allowed in its current status."""


EDITABLE_STATUSES = (ApprovalStatus.DRAFT, ApprovalStatus.REJECTED)

_TRANSITIONS: dict[str, tuple[ApprovalStatus, ...]] = {
    "submit": (ApprovalStatus.DRAFT,),
    "approve": (ApprovalStatus.PENDING_APPROVAL,),
    "reject": (ApprovalStatus.PENDING_APPROVAL,),
    "delete": (ApprovalStatus.DRAFT,),
}

_TARGETS: dict[str, ApprovalStatus] = {
    "submit": ApprovalStatus.PENDING_APPROVAL,
    "approve": ApprovalStatus.APPROVED,
    "reject": ApprovalStatus.REJECTED,
}


def calculate_totals(items: list[ProposalItem]) -> ProposalTotals:
    """Gross (rate card), net (negotiated) and discount for a list of items."""
    gross = sum(item.rate_card_price * item.quantity for item in items)
    net = sum(item.negotiated_price * item.quantity for item in items)
    by_placement: dict[str, int] = {}
    for item in items:
        key = item.placement_type.value
        by_placement[key] = by_placement.get(key, 0) + item.quantity

    discount = gross - net
    return ProposalTotals(
        item_count=len(items),
        slot_count=sum(item.quantity for item in items),
        gross_total=gross,
        net_total=net,
        discount=discount,
        discount_percentage=round(discount / gross * 100, 1) if gross else 0.0,
        slots_by_placement=by_placement,
    )


def check_editable(status: ApprovalStatus) -> None:
    if status not in EDITABLE_STATUSES:
        raise ProposalStateError(f"Proposal in status '{status.value}' cannot be edited")


def next_status(action: str, current: ApprovalStatus, item_count: int = 0) -> ApprovalStatus:
    """Validate ``action`` against ``current`` and return the resulting status.

    Raises:
        ProposalStateError: If the action is not allowed from ``current``.
    """
    allowed = _TRANSITIONS.get(action)
    if allowed is None:
        raise ValueError(f"Unknown proposal action: {action}")
    if current not in allowed:
        raise ProposalStateError(
            f"Cannot {action} a proposal in status '{current.value}'"
        )
    if action == "submit" and item_count == 0:
        raise ProposalStateError("Cannot submit a proposal without items")
    return _TARGETS.get(action, current)
