"""
Combined ledger feed for ScoutLedger.

Transactions, installment payments, fund transfers and internal transfers are turned
into LedgerEntry rows and merged into one list, newest first.
"""
from __future__ import annotations
from typing import Dict, List

from models import (
    FundTransferType,
    Group,
    Ledger,
    LedgerEntry,
    LedgerEntryType,
    TransactionType,
)

INSTALLMENT_LABELS = {
    "first": "1st installment",
    "second": "2nd installment",
    "third": "3rd installment",
    "summer_camp": "Summer camp",
}


def _group_name(groups: Dict[str, Group], group_id: str) -> str:
    g = groups.get(group_id)
    return g.name if g else "N/A"


def build_ledger_entries(ledger: Ledger) -> List[LedgerEntry]:
    """
    Project every recorded event into a LedgerEntry, sorted by date descending.
    Entries with the same date keep the order transactions, installments,
    fund transfers, internal transfers (sorted() is stable).
    """
    groups = ledger.group_map()
    entries: List[LedgerEntry] = []

    for t in ledger.transactions:
        income = t.type is TransactionType.INCOME
        entries.append(LedgerEntry(
            id=t.id,
            date=t.date,
            type=LedgerEntryType.TRANSACTION_INCOME if income else LedgerEntryType.TRANSACTION_EXPENSE,
            description=t.description,
            amount=t.amount,
            details=f"{t.category} · {t.payment_method.value}",
            groups_involved=[t.group_id],
            original=t,
        ))

    for m in ledger.members:
        for key, inst in m.installments.items():
            if inst.amount <= 0 or inst.date is None:
                continue
            method = inst.payment_method.value if inst.payment_method else ""
            entries.append(LedgerEntry(
                id=f"{m.id}-{key}",
                date=inst.date,
                type=LedgerEntryType.INSTALLMENT_PAYMENT,
                description=f"{INSTALLMENT_LABELS[key]} - {m.name}",
                amount=inst.amount,
                details=f"{m.unit} · {method}" if m.unit else method,
                groups_involved=[m.group_id],
                original=m,
            ))

    for ft in ledger.fund_transfers:
        kind = "Withdrawal" if ft.type is FundTransferType.WITHDRAWAL else "Deposit"
        shares = ", ".join(
            f"{_group_name(groups, gid)}: {amount:.2f}" for gid, amount in ft.distribution.items()
        )
        entries.append(LedgerEntry(
            id=ft.id,
            date=ft.date,
            type=LedgerEntryType.FUND_TRANSFER,
            description=ft.description,
            amount=ft.total_amount,
            details=f"{kind} ({shares})" if shares else kind,
            groups_involved=list(ft.distribution.keys()),
            original=ft,
        ))

    for it in ledger.internal_transfers:
        kind = "Repayment" if it.is_repayment else "Loan"
        entries.append(LedgerEntry(
            id=it.id,
            date=it.date,
            type=LedgerEntryType.INTERNAL_TRANSFER,
            description=it.description,
            amount=it.amount,
            details=(
                f"{kind}: {_group_name(groups, it.from_group_id)} -> "
                f"{_group_name(groups, it.to_group_id)} · {it.payment_method.value}"
            ),
            groups_involved=[it.from_group_id, it.to_group_id],
            original=it,
        ))

    return sorted(entries, key=lambda e: e.date, reverse=True)
