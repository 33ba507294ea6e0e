"""
Fee allocation for member installments.

A member's first installment pays the group's fixed fees (censimento, BP park fee,
group fee, pre-camp) before anything counts as group income. When the payment covers
all of them the allocation is automatic; a smaller payment needs an explicit choice
of which fees it covers, and that choice may never add up to more than was paid.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from errors import AllocationError, AllocationRequired, LedgerValidationError
from models import (
    FIRST,
    INSTALLMENT_KEYS,
    SECOND,
    THIRD,
    FeeAllocations,
    Installment,
    Member,
    PaymentMethod,
    QuoteSettings,
)
from utils import round2, today_str

logger = logging.getLogger(__name__)

# the installments that carry the group fee
GROUP_FEE_SLOTS = (FIRST, SECOND, THIRD)


def total_fixed_fees(settings: QuoteSettings) -> float:
    """Sum of censimento, BP park fee, group fee and pre-camp, in cents"""
    return round2(
        settings.fee("censimento")
        + settings.fee("bp_park_fee")
        + settings.fee("group_fee")
        + settings.fee("pre_camp")
    )


def suggest_amount(member: Member, key: str, settings: QuoteSettings) -> float:
    """
    Default amount to propose for an installment slot.
    A paid slot keeps its amount; an unpaid first installment gets the base amount
    less the sibling discount; the other slots have no suggestion (0.0).
    """
    current = member.installments.get(key)
    if current.amount > 0:
        return current.amount
    if key != FIRST:
        return 0.0
    base = float(settings.installments.get(FIRST, 0.0) or 0.0)
    if base <= 0:
        return 0.0
    discount = float(settings.sibling_discounts.get(member.siblings, 0.0) or 0.0)
    return round2(base * (1 - discount / 100))


def resolve_allocation(
    paid_amount: float,
    settings: QuoteSettings,
    selection: Optional[FeeAllocations] = None,
) -> Optional[FeeAllocations]:
    """
    Decide which fixed fees a first-installment payment covers.

    - nothing paid: no allocation (None)
    - paid >= total fixed fees: every fee is covered, selection is ignored
    - partial payment: selection is required (AllocationRequired otherwise) and its
      fees must not exceed the amount paid (AllocationError)
    """
    if paid_amount <= 0:
        return None
    total = total_fixed_fees(settings)
    if paid_amount >= total:
        return FeeAllocations.full()
    if selection is None:
        raise AllocationRequired(paid_amount, total)
    allocated = selection.allocated_total(settings)
    if allocated > paid_amount:
        raise AllocationError(
            f"Selected fees ({allocated:.2f}) exceed the amount paid ({paid_amount:.2f})."
        )
    return FeeAllocations(
        censimento=selection.censimento,
        bp_park_fee=selection.bp_park_fee,
        group_fee=selection.group_fee,
        pre_camp=selection.pre_camp,
    )


def record_installment(
    current: Installment,
    key: str,
    amount: float,
    date: Optional[str],
    payment_method: Optional[PaymentMethod],
    settings: QuoteSettings,
    selection: Optional[FeeAllocations] = None,
) -> Installment:
    """
    Build the new state of an installment slot.

    A zero amount clears the slot. When a first installment is edited without a new
    selection, the previous allocation is reused only if it still fits the new amount;
    otherwise the caller must go through the selection step again.
    """
    if key not in INSTALLMENT_KEYS:
        raise LedgerValidationError(f"Unknown installment '{key}'.")
    if amount < 0:
        raise LedgerValidationError("Installment amount cannot be negative.")
    amount = round2(amount)
    if amount == 0:
        return Installment()
    if payment_method is None:
        raise LedgerValidationError("A payment method is required for a paid installment.")

    date = date or today_str()
    if key != FIRST:
        return Installment(amount=amount, date=date, payment_method=payment_method)

    if selection is None and current.allocations is not None:
        if current.allocations.allocated_total(settings) <= amount:
            selection = current.allocations
        else:
            logger.debug("Discarding stale allocation for %.2f", amount)
    allocations = resolve_allocation(amount, settings, selection)
    return Installment(
        amount=amount, date=date, payment_method=payment_method, allocations=allocations
    )


@dataclass
class Attribution:
    """How one paid installment splits between the group and the fee pools"""
    group_amount: float = 0.0
    group_fee: float = 0.0
    censimento: float = 0.0
    bp_park_fee: float = 0.0
    pre_camp_deducted: float = 0.0  # taken out of the group's share (first only)
    pre_camp_pool: float = 0.0  # counted in the global pre-camp pool


def group_fee_paid(key: str, inst: Installment) -> bool:
    """
    First installment: only when its allocation covers the group fee.
    Second and third: whenever something was paid.
    """
    if not inst.is_paid or key not in GROUP_FEE_SLOTS:
        return False
    if key == FIRST:
        return bool(inst.allocations and inst.allocations.group_fee)
    return True


def attribute_installment(key: str, inst: Installment, settings: QuoteSettings) -> Attribution:
    """Split a paid installment into group income and fixed-fee buckets"""
    if not inst.is_paid:
        return Attribution()

    alloc = inst.allocations if key == FIRST else None
    out = Attribution()
    amount_for_group = inst.amount

    if group_fee_paid(key, inst):
        out.group_fee = settings.fee("group_fee")
        amount_for_group -= out.group_fee

    if alloc is not None:
        if alloc.pre_camp:
            out.pre_camp_deducted = settings.fee("pre_camp")
            amount_for_group -= out.pre_camp_deducted
        if alloc.censimento:
            out.censimento = settings.fee("censimento")
            amount_for_group -= out.censimento
        if alloc.bp_park_fee:
            out.bp_park_fee = settings.fee("bp_park_fee")
            amount_for_group -= out.bp_park_fee

    if key == FIRST:
        out.pre_camp_pool = out.pre_camp_deducted
    elif key in (SECOND, THIRD):
        out.pre_camp_pool = settings.fee("pre_camp")

    out.group_amount = max(0.0, amount_for_group)
    return out
