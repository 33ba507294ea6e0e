"""
Search filters for ScoutLedger
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List

from models import LedgerEntry, LedgerEntryType, Transaction, TransactionType

ALL = "ALL"

INCOME_ENTRY_TYPES = (LedgerEntryType.TRANSACTION_INCOME, LedgerEntryType.INSTALLMENT_PAYMENT)


@dataclass
class Filters:
    """All set fields must match (AND); empty / "ALL" means no constraint"""
    text: str = ""
    type: str = ALL  # ALL | INCOME | EXPENSE
    category: str = ALL  # category name
    start_date: str = ""  # YYYY-MM-DD, inclusive
    end_date: str = ""
    ledger_type: str = ALL  # ALL | LedgerEntryType value
    group_id: str = ALL

    def is_active(self) -> bool:
        return (
            self.text != ""
            or self.type != ALL
            or self.category != ALL
            or self.start_date != ""
            or self.end_date != ""
            or self.ledger_type != ALL
            or self.group_id != ALL
        )


def _match_text(description: str, text: str) -> bool:
    return not text or text.lower() in (description or "").lower()


def _match_dates(d: str, f: Filters) -> bool:
    # ISO dates compare lexically in chronological order
    if f.start_date and d < f.start_date:
        return False
    if f.end_date and d > f.end_date:
        return False
    return True


def _match_entry_type(entry: LedgerEntry, f: Filters) -> bool:
    if f.type == TransactionType.INCOME.value:
        if entry.type not in INCOME_ENTRY_TYPES:
            return False
    elif f.type == TransactionType.EXPENSE.value:
        if entry.type is not LedgerEntryType.TRANSACTION_EXPENSE:
            return False

    if f.ledger_type == ALL:
        return True
    if f.ledger_type == LedgerEntryType.TRANSACTION_INCOME.value:
        return entry.type in INCOME_ENTRY_TYPES
    return entry.type.value == f.ledger_type


def entry_matches(entry: LedgerEntry, f: Filters) -> bool:
    """True if the ledger entry passes every filter"""
    if not _match_text(entry.description, f.text):
        return False
    if not _match_entry_type(entry, f):
        return False
    if f.category != ALL:
        if not isinstance(entry.original, Transaction) or entry.original.category != f.category:
            return False
    if not _match_dates(entry.date, f):
        return False
    if f.group_id != ALL and f.group_id not in entry.groups_involved:
        return False
    return True


def filter_entries(entries: List[LedgerEntry], f: Filters) -> List[LedgerEntry]:
    """Filter the combined ledger feed, keeping its order"""
    return [e for e in entries if entry_matches(e, f)]


def filter_transactions(transactions: List[Transaction], f: Filters) -> List[Transaction]:
    """Filter raw transactions (ledger_type does not apply)"""
    out = []
    for t in transactions:
        if not _match_text(t.description, f.text):
            continue
        if f.type != ALL and t.type.value != f.type:
            continue
        if f.category != ALL and t.category != f.category:
            continue
        if not _match_dates(t.date, f):
            continue
        if f.group_id != ALL and t.group_id != f.group_id:
            continue
        out.append(t)
    return out
