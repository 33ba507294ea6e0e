"""
Record builders for ScoutLedger tests
"""
from __future__ import annotations

from models import (
    Installment,
    Member,
    MemberInstallments,
    PaymentMethod,
    Transaction,
    TransactionType,
)


def tx(tx_id, group_id, amount, type=TransactionType.INCOME, method=PaymentMethod.CASH,
       date="2024-09-10", description=None, category="Materiale", **kw) -> Transaction:
    return Transaction(
        id=tx_id,
        group_id=group_id,
        description=description or tx_id,
        amount=amount,
        date=date,
        type=type,
        category=category,
        payment_method=method,
        **kw,
    )


def paid(amount, method=PaymentMethod.TRANSFER, date="2024-10-01", allocations=None) -> Installment:
    return Installment(amount=amount, date=date, payment_method=method, allocations=allocations)


def member(member_id, group_id, name=None, siblings="0", unit="", **installments) -> Member:
    return Member(
        id=member_id,
        group_id=group_id,
        name=name or member_id,
        unit=unit,
        siblings=siblings,
        installments=MemberInstallments(**installments),
    )
