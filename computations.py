"""
Balance aggregation for ScoutLedger.

Every balance is recomputed from the full ledger on each call: the functions here
read the snapshot, never modify it, and return the same figures for the same input.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from allocation import attribute_installment
from models import (
    FIRST,
    INSTALLMENT_KEYS,
    FundTransferType,
    Ledger,
    PaymentMethod,
    SelfFinancingProject,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

# names that mark the staff/leaders group, used when no fund manager is designated
STAFF_GROUP_NAMES = ("comunità capi", "comunita capi", "capi", "staff", "co.ca.", "coca")


@dataclass
class OverallSummary:
    total_income: float = 0.0
    total_expenses: float = 0.0
    cash_income: float = 0.0
    bank_income: float = 0.0
    cash_expenses: float = 0.0
    bank_expenses: float = 0.0
    cash_balance: float = 0.0
    bank_balance: float = 0.0

    @property
    def balance(self) -> float:
        return self.cash_balance + self.bank_balance


@dataclass
class GroupSummary:
    cash_income: float = 0.0
    bank_income: float = 0.0
    cash_expenses: float = 0.0
    bank_expenses: float = 0.0
    cash_balance: float = 0.0
    bank_balance: float = 0.0
    pre_camp_cash: float = 0.0
    pre_camp_bank: float = 0.0

    @property
    def balance(self) -> float:
        return self.cash_balance + self.bank_balance

    def add_income(self, amount: float, cash: bool) -> None:
        if cash:
            self.cash_income += amount
            self.cash_balance += amount
        else:
            self.bank_income += amount
            self.bank_balance += amount

    def add_expense(self, amount: float, cash: bool) -> None:
        if cash:
            self.cash_expenses += amount
            self.cash_balance -= amount
        else:
            self.bank_expenses += amount
            self.bank_balance -= amount

    def move(self, amount: float, cash: bool) -> None:
        """Shift the balance without counting income or expenses"""
        if cash:
            self.cash_balance += amount
        else:
            self.bank_balance += amount


@dataclass
class FundPools:
    total_censimento: float = 0.0
    censimento_count: int = 0
    total_bp_park_fee: float = 0.0
    bp_park_fee_count: int = 0
    total_pre_camp: float = 0.0
    pre_camp_cash: float = 0.0
    pre_camp_bank: float = 0.0
    total_group_fee: float = 0.0
    group_fee_by_cash: float = 0.0
    group_fee_by_bank: float = 0.0


@dataclass
class BalanceReport:
    overall: OverallSummary
    groups: Dict[str, GroupSummary]
    pools: FundPools
    fund_manager_id: Optional[str]
    group_fund_balance: float
    warnings: List[str] = field(default_factory=list)


def _is_cash(method: Optional[PaymentMethod]) -> bool:
    return method is PaymentMethod.CASH


def resolve_fund_manager_id(ledger: Ledger) -> Optional[str]:
    """
    Group holding the shared group-fee bank account.
    The designated group if it still exists, else the staff group, else the first group.
    """
    ids = {g.id for g in ledger.groups}
    if ledger.group_fund_manager_id in ids:
        return ledger.group_fund_manager_id
    for g in ledger.groups:
        if g.name.strip().lower() in STAFF_GROUP_NAMES:
            return g.id
    return ledger.groups[0].id if ledger.groups else None


def compute_overall_summary(ledger: Ledger) -> OverallSummary:
    """
    Global totals over every transaction and every paid installment, whatever group
    they point at.
    """
    s = OverallSummary()
    for t in ledger.transactions:
        cash = _is_cash(t.payment_method)
        if t.type is TransactionType.INCOME:
            s.total_income += t.amount
            if cash:
                s.cash_income += t.amount
                s.cash_balance += t.amount
            else:
                s.bank_income += t.amount
                s.bank_balance += t.amount
        else:
            s.total_expenses += t.amount
            if cash:
                s.cash_expenses += t.amount
                s.cash_balance -= t.amount
            else:
                s.bank_expenses += t.amount
                s.bank_balance -= t.amount

    for m in ledger.members:
        for _, inst in m.installments.items():
            if not inst.is_paid:
                continue
            s.total_income += inst.amount
            if _is_cash(inst.payment_method):
                s.cash_income += inst.amount
                s.cash_balance += inst.amount
            else:
                s.bank_income += inst.amount
                s.bank_balance += inst.amount
    return s


def compute_fund_pools(ledger: Ledger, warnings: Optional[List[str]] = None) -> FundPools:
    """Totals collected for censimento, BP park fee, pre-camp and the group fee"""
    pools = FundPools()
    groups = ledger.group_map()
    for m in ledger.members:
        group = groups.get(m.group_id)
        if group is None:
            if warnings is not None:
                warnings.append(f"Member '{m.name}' ({m.id}) references unknown group '{m.group_id}'")
            continue
        settings = group.quote_settings
        for key, inst in m.installments.items():
            if not inst.is_paid:
                continue
            a = attribute_installment(key, inst, settings)
            cash = _is_cash(inst.payment_method)
            if key == FIRST and inst.allocations is not None:
                if inst.allocations.censimento:
                    pools.total_censimento += a.censimento
                    pools.censimento_count += 1
                if inst.allocations.bp_park_fee:
                    pools.total_bp_park_fee += a.bp_park_fee
                    pools.bp_park_fee_count += 1
            if a.pre_camp_pool:
                pools.total_pre_camp += a.pre_camp_pool
                if cash:
                    pools.pre_camp_cash += a.pre_camp_pool
                else:
                    pools.pre_camp_bank += a.pre_camp_pool
            if a.group_fee:
                pools.total_group_fee += a.group_fee
                if cash:
                    pools.group_fee_by_cash += a.group_fee
                else:
                    pools.group_fee_by_bank += a.group_fee
    return pools


def compute_group_summaries(
    ledger: Ledger,
    pools: FundPools,
    fund_manager_id: Optional[str],
    warnings: Optional[List[str]] = None,
) -> Dict[str, GroupSummary]:
    """
    Cash and bank position of every group: own transactions, net installment income,
    collected group fees credited to the fund manager, fund transfers and internal
    transfers. Records pointing at unknown groups are left out.
    """
    if warnings is None:
        warnings = []
    groups = ledger.group_map()
    summaries = {g.id: GroupSummary() for g in ledger.groups}

    for t in ledger.transactions:
        s = summaries.get(t.group_id)
        if s is None:
            warnings.append(f"Transaction '{t.description}' ({t.id}) references unknown group '{t.group_id}'")
            continue
        if t.type is TransactionType.INCOME:
            s.add_income(t.amount, _is_cash(t.payment_method))
        else:
            s.add_expense(t.amount, _is_cash(t.payment_method))

    for m in ledger.members:
        s = summaries.get(m.group_id)
        if s is None:
            # already reported by compute_fund_pools
            continue
        settings = groups[m.group_id].quote_settings
        for key, inst in m.installments.items():
            if not inst.is_paid:
                continue
            a = attribute_installment(key, inst, settings)
            cash = _is_cash(inst.payment_method)
            if a.pre_camp_deducted:
                if cash:
                    s.pre_camp_cash += a.pre_camp_deducted
                else:
                    s.pre_camp_bank += a.pre_camp_deducted
            s.add_income(a.group_amount, cash)

    manager = summaries.get(fund_manager_id) if fund_manager_id else None
    if manager is not None:
        manager.add_income(pools.group_fee_by_cash, cash=True)
        manager.add_income(pools.group_fee_by_bank, cash=False)

    for ft in ledger.fund_transfers:
        sign = 1 if ft.type is FundTransferType.WITHDRAWAL else -1
        if manager is not None:
            manager.move(-sign * ft.total_amount, cash=False)
        else:
            warnings.append(f"Fund transfer '{ft.description}' ({ft.id}) has no fund manager group")
        for group_id, amount in ft.distribution.items():
            s = summaries.get(group_id)
            if s is None:
                warnings.append(f"Fund transfer '{ft.description}' ({ft.id}) distributes to unknown group '{group_id}'")
                continue
            s.move(sign * amount, cash=True)

    for it in ledger.internal_transfers:
        src = summaries.get(it.from_group_id)
        dst = summaries.get(it.to_group_id)
        if src is None or dst is None:
            warnings.append(
                f"Internal transfer '{it.description}' ({it.id}) references unknown group "
                f"'{it.from_group_id if src is None else it.to_group_id}'"
            )
            continue
        cash = _is_cash(it.payment_method)
        src.move(-it.amount, cash)
        dst.move(it.amount, cash)

    return summaries


def compute_group_fund_balance(ledger: Ledger, pools: FundPools, fund_manager_id: Optional[str]) -> float:
    """Collected group fees less the expenses booked on the fund manager group"""
    spent = sum(
        t.amount
        for t in ledger.transactions
        if t.group_id == fund_manager_id and t.type is TransactionType.EXPENSE
    )
    return pools.total_group_fee - spent


def compute_balances(ledger: Ledger) -> BalanceReport:
    """Full balance report for the ledger"""
    warnings: List[str] = []
    fund_manager_id = resolve_fund_manager_id(ledger)
    pools = compute_fund_pools(ledger, warnings)
    groups = compute_group_summaries(ledger, pools, fund_manager_id, warnings)
    for w in warnings:
        logger.warning(w)
    return BalanceReport(
        overall=compute_overall_summary(ledger),
        groups=groups,
        pools=pools,
        fund_manager_id=fund_manager_id,
        group_fund_balance=compute_group_fund_balance(ledger, pools, fund_manager_id),
        warnings=warnings,
    )


def outstanding_debt(ledger: Ledger, group_id: str, fund_manager_id: Optional[str] = None) -> float:
    """Loans the fund manager made to group_id less what the group has repaid"""
    if fund_manager_id is None:
        fund_manager_id = resolve_fund_manager_id(ledger)
    loaned = sum(
        it.amount
        for it in ledger.internal_transfers
        if not it.is_repayment and it.from_group_id == fund_manager_id and it.to_group_id == group_id
    )
    repaid = sum(
        it.amount
        for it in ledger.internal_transfers
        if it.is_repayment and it.from_group_id == group_id and it.to_group_id == fund_manager_id
    )
    return loaned - repaid


def compute_advances(transactions: List[Transaction]) -> dict:
    """
    Expenses someone paid out of pocket, grouped by person (newest first).
    Returns {"total_to_repay", "by_person": {person: {"transactions", "to_repay"}}}
    """
    advances = [t for t in transactions if t.advanced_by]
    advances.sort(key=lambda t: t.date, reverse=True)
    by_person: Dict[str, dict] = {}
    for t in advances:
        entry = by_person.setdefault(t.advanced_by, {"transactions": [], "to_repay": 0.0})
        entry["transactions"].append(t)
        if not t.repaid:
            entry["to_repay"] += t.amount
    return {
        "total_to_repay": sum(e["to_repay"] for e in by_person.values()),
        "by_person": by_person,
    }


def compute_project_summaries(
    projects: List[SelfFinancingProject],
    transactions: List[Transaction],
) -> List[dict]:
    """Income, expenses and profit of each self-financing project, sorted by name"""
    out = []
    for p in projects:
        txs = [t for t in transactions if t.self_financing_id == p.id]
        income = sum(t.amount for t in txs if t.type is TransactionType.INCOME)
        expenses = sum(t.amount for t in txs if t.type is TransactionType.EXPENSE)
        out.append({
            "project": p,
            "income": income,
            "expenses": expenses,
            "profit": income - expenses,
            "transactions": txs,
        })
    out.sort(key=lambda d: d["project"].name.lower())
    return out


def installment_totals(ledger: Ledger, group_id: str) -> Dict[str, float]:
    """Amount collected per installment slot for one group"""
    totals = {k: 0.0 for k in INSTALLMENT_KEYS}
    for m in ledger.members:
        if m.group_id != group_id:
            continue
        for key, inst in m.installments.items():
            totals[key] += inst.amount
    return totals
