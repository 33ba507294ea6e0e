"""
Ledger store for ScoutLedger.

LedgerStore owns the in-memory snapshot and is the only place it changes. Each
operation checks its input first and raises LedgerValidationError without touching
the snapshot when the check fails; a successful change is written through the
repository. If that write fails the change is kept in memory and StorageError is
raised, and `save()` can be retried later.
"""
from __future__ import annotations
import copy
import logging
from dataclasses import replace
from typing import Dict, List, Optional

from allocation import record_installment, suggest_amount
from computations import BalanceReport, compute_balances, outstanding_debt, resolve_fund_manager_id
from config import GROUP_COLORS, INITIAL_QUOTE_SETTINGS, migrate_quote_settings
from errors import LedgerValidationError, StorageError
from filters import Filters, filter_entries, filter_transactions
from ledger_feed import build_ledger_entries
from models import (
    INSTALLMENT_KEYS,
    SIBLINGS_OPTIONS,
    Category,
    FeeAllocations,
    FundTransfer,
    FundTransferType,
    Group,
    InternalTransfer,
    Ledger,
    LedgerEntry,
    Member,
    PaymentMethod,
    QuoteSettings,
    SelfFinancingProject,
    Transaction,
    TransactionType,
    Unit,
)
from permissions import UserPermissions
from utils import is_iso_date, new_id, round2, today_str

logger = logging.getLogger(__name__)


class LedgerStore:

    def __init__(self, repository, ledger: Optional[Ledger] = None):
        self.repository = repository
        self.ledger: Ledger = ledger if ledger is not None else repository.load()
        self.unsaved = False

    # ---------- persistence ----------

    def save(self) -> None:
        """Write the snapshot; on failure it stays in memory and unsaved"""
        try:
            self.repository.save(self.ledger)
        except StorageError:
            self.unsaved = True
            logger.exception("Saving the ledger failed; changes are kept in memory")
            raise
        self.unsaved = False

    def _commit(self, what: str) -> None:
        logger.info(what)
        self.save()

    # ---------- reads ----------

    def balances(self) -> BalanceReport:
        return compute_balances(self.ledger)

    def entries(self, filters: Optional[Filters] = None) -> List[LedgerEntry]:
        entries = build_ledger_entries(self.ledger)
        return filter_entries(entries, filters) if filters else entries

    def transactions(self, filters: Optional[Filters] = None) -> List[Transaction]:
        txs = list(self.ledger.transactions)
        return filter_transactions(txs, filters) if filters else txs

    def fund_manager_id(self) -> Optional[str]:
        return resolve_fund_manager_id(self.ledger)

    def group(self, group_id: str) -> Group:
        for g in self.ledger.groups:
            if g.id == group_id:
                return g
        raise LedgerValidationError(f"Unknown group '{group_id}'.")

    def member(self, member_id: str) -> Member:
        for m in self.ledger.members:
            if m.id == member_id:
                return m
        raise LedgerValidationError(f"Unknown member '{member_id}'.")

    def transaction(self, tx_id: str) -> Transaction:
        for t in self.ledger.transactions:
            if t.id == tx_id:
                return t
        raise LedgerValidationError(f"Unknown transaction '{tx_id}'.")

    def _project(self, project_id: str) -> SelfFinancingProject:
        for p in self.ledger.self_financing_projects:
            if p.id == project_id:
                return p
        raise LedgerValidationError(f"Unknown self-financing project '{project_id}'.")

    # ---------- transactions ----------

    def _check_transaction(self, t: Transaction) -> None:
        self.group(t.group_id)
        if not t.description.strip():
            raise LedgerValidationError("Description is required.")
        if t.amount <= 0:
            raise LedgerValidationError("Amount must be greater than zero.")
        if not is_iso_date(t.date):
            raise LedgerValidationError("Date must be YYYY-MM-DD.")
        if t.self_financing_id is not None:
            self._project(t.self_financing_id)
        if t.repaid and not t.advanced_by:
            raise LedgerValidationError("Only advanced expenses can be marked as repaid.")

    def add_transaction(
        self,
        group_id: str,
        description: str,
        amount: float,
        type: TransactionType,
        category: str = "",
        payment_method: PaymentMethod = PaymentMethod.CASH,
        date: Optional[str] = None,
        is_camp_expense: bool = False,
        advanced_by: Optional[str] = None,
        self_financing_id: Optional[str] = None,
    ) -> Transaction:
        t = Transaction(
            id=new_id("tx"),
            group_id=group_id,
            description=description.strip(),
            amount=round2(amount),
            date=date or today_str(),
            type=TransactionType(type),
            category=category,
            payment_method=PaymentMethod(payment_method),
            is_camp_expense=is_camp_expense,
            advanced_by=(advanced_by or "").strip() or None,
            self_financing_id=self_financing_id,
        )
        self._check_transaction(t)
        self.ledger.transactions.append(t)
        self._commit(f"Added {t.type.value.lower()} '{t.description}' {t.amount:.2f}")
        return t

    def update_transaction(self, tx: Transaction) -> Transaction:
        """Replace the stored transaction with the same id"""
        current = self.transaction(tx.id)
        try:
            updated = replace(
                tx,
                type=TransactionType(tx.type),
                payment_method=PaymentMethod(tx.payment_method),
                repayment_method=PaymentMethod(tx.repayment_method) if tx.repayment_method else None,
                advanced_by=(tx.advanced_by or "").strip() or None,
            )
        except ValueError as ex:
            raise LedgerValidationError(str(ex)) from ex
        if not updated.advanced_by:
            updated = replace(updated, repaid=False, repaid_date=None, repayment_method=None)
        self._check_transaction(updated)
        i = self.ledger.transactions.index(current)
        self.ledger.transactions[i] = updated
        self._commit(f"Updated transaction {tx.id}")
        return updated

    def delete_transaction(self, tx_id: str) -> None:
        t = self.transaction(tx_id)
        self.ledger.transactions.remove(t)
        self._commit(f"Deleted transaction {tx_id}")

    def update_repayment(
        self,
        tx_id: str,
        repaid: bool,
        repaid_date: Optional[str] = None,
        repayment_method: Optional[PaymentMethod] = None,
    ) -> Transaction:
        """Mark an advanced expense as repaid (defaults: today, cash) or not repaid"""
        t = self.transaction(tx_id)
        if not t.advanced_by:
            raise LedgerValidationError("This transaction was not advanced by anyone.")
        if repaid:
            if repaid_date is not None and not is_iso_date(repaid_date):
                raise LedgerValidationError("Repayment date must be YYYY-MM-DD.")
            t.repaid = True
            t.repaid_date = repaid_date or t.repaid_date or today_str()
            t.repayment_method = repayment_method or t.repayment_method or PaymentMethod.CASH
        else:
            t.repaid, t.repaid_date, t.repayment_method = False, None, None
        self._commit(f"Repayment of {tx_id} set to {t.repaid}")
        return t

    # ---------- groups ----------

    def add_group(self, name: str = "Nuovo Gruppo") -> Group:
        g = Group(
            id=new_id("group"),
            name=name.strip() or "Nuovo Gruppo",
            color=GROUP_COLORS[len(self.ledger.groups) % len(GROUP_COLORS)],
            quote_settings=migrate_quote_settings(copy.deepcopy(INITIAL_QUOTE_SETTINGS)),
        )
        self.ledger.groups.append(g)
        self._commit(f"Added group '{g.name}'")
        return g

    def rename_group(self, group_id: str, name: str) -> None:
        if not name.strip():
            raise LedgerValidationError("Group name cannot be empty.")
        self.group(group_id).name = name.strip()
        self._commit(f"Renamed group {group_id}")

    def set_group_color(self, group_id: str, color: str) -> None:
        self.group(group_id).color = color
        self._commit(f"Recoloured group {group_id}")

    def update_quote_settings(self, group_id: str, settings: QuoteSettings) -> None:
        g = self.group(group_id)
        fees = [settings.group_fee, settings.bp_park_fee, settings.censimento, settings.pre_camp]
        if any(f < 0 for f in fees) or any(v < 0 for v in settings.installments.values()):
            raise LedgerValidationError("Amounts cannot be negative.")
        if any(not 0 <= v <= 100 for v in settings.sibling_discounts.values()):
            raise LedgerValidationError("Sibling discounts must be between 0 and 100.")
        over = [
            m.name
            for m in self.ledger.members
            if m.group_id == group_id
            and m.installments.first.allocations is not None
            and m.installments.first.allocations.allocated_total(settings) > m.installments.first.amount
        ]
        if over:
            raise LedgerValidationError(
                "The new fees exceed what these members paid for the fees covered by their "
                f"first installment: {', '.join(over)}. Re-enter those installments first."
            )
        g.quote_settings = copy.deepcopy(settings)
        self._commit(f"Updated quote settings of {group_id}")

    def delete_group(self, group_id: str) -> None:
        self.group(group_id)
        in_use = any(t.group_id == group_id for t in self.ledger.transactions) or any(
            m.group_id == group_id for m in self.ledger.members
        )
        if in_use:
            raise LedgerValidationError("Cannot delete the group: it still has transactions or members.")
        if len(self.ledger.groups) <= 1:
            raise LedgerValidationError("Cannot delete the last group.")
        self.ledger.groups = [g for g in self.ledger.groups if g.id != group_id]
        if self.ledger.group_fund_manager_id == group_id:
            self.ledger.group_fund_manager_id = None
        self._commit(f"Deleted group {group_id}")

    def set_fund_manager(self, group_id: Optional[str]) -> None:
        """Designate the group holding the group-fee account (None: automatic)"""
        if group_id is not None:
            self.group(group_id)
        self.ledger.group_fund_manager_id = group_id
        self._commit(f"Fund manager set to {group_id}")

    # ---------- members and installments ----------

    def add_member(self, group_id: str, name: str, unit: str = "", siblings: str = "0") -> Member:
        self.group(group_id)
        if not name.strip():
            raise LedgerValidationError("Member name is required.")
        if siblings not in SIBLINGS_OPTIONS:
            raise LedgerValidationError(f"Siblings must be one of {', '.join(SIBLINGS_OPTIONS)}.")
        m = Member(id=new_id("member"), group_id=group_id, name=name.strip(), unit=unit, siblings=siblings)
        self.ledger.members.append(m)
        self._commit(f"Added member '{m.name}' to {group_id}")
        return m

    def update_member(
        self,
        member_id: str,
        name: Optional[str] = None,
        unit: Optional[str] = None,
        siblings: Optional[str] = None,
    ) -> Member:
        m = self.member(member_id)
        if name is not None and not name.strip():
            raise LedgerValidationError("Member name is required.")
        if siblings is not None and siblings not in SIBLINGS_OPTIONS:
            raise LedgerValidationError(f"Siblings must be one of {', '.join(SIBLINGS_OPTIONS)}.")
        if name is not None:
            m.name = name.strip()
        if unit is not None:
            m.unit = unit
        if siblings is not None:
            m.siblings = siblings
        self._commit(f"Updated member {member_id}")
        return m

    def delete_member(self, member_id: str) -> None:
        m = self.member(member_id)
        self.ledger.members.remove(m)
        self._commit(f"Deleted member {member_id}")

    def suggest_installment(self, member_id: str, key: str) -> float:
        m = self.member(member_id)
        return suggest_amount(m, key, self.group(m.group_id).quote_settings)

    def record_installment(
        self,
        member_id: str,
        key: str,
        amount: float,
        date: Optional[str] = None,
        payment_method: Optional[PaymentMethod] = PaymentMethod.TRANSFER,
        selection: Optional[FeeAllocations] = None,
    ):
        """
        Set one installment slot. A partial first installment raises AllocationRequired
        until it is called again with a selection of covered fees.
        """
        m = self.member(member_id)
        if key not in INSTALLMENT_KEYS:
            raise LedgerValidationError(f"Unknown installment '{key}'.")
        if date is not None and not is_iso_date(date):
            raise LedgerValidationError("Date must be YYYY-MM-DD.")
        settings = self.group(m.group_id).quote_settings
        inst = record_installment(m.installments.get(key), key, amount, date, payment_method, settings, selection)
        setattr(m.installments, key, inst)
        self._commit(f"Recorded {key} installment of {m.name}: {inst.amount:.2f}")
        return inst

    # ---------- fund transfers ----------

    def add_fund_transfer(
        self,
        type: FundTransferType,
        total_amount: float,
        description: str,
        distribution: Dict[str, float],
        date: Optional[str] = None,
    ) -> FundTransfer:
        """Withdrawal from / deposit to the fund manager's bank account, split among group cashboxes"""
        total = round2(total_amount)
        shares = {gid: round2(v) for gid, v in distribution.items() if v}
        if total <= 0:
            raise LedgerValidationError("Total amount must be greater than zero.")
        if not description.strip():
            raise LedgerValidationError("Description is required.")
        if any(v < 0 for v in shares.values()):
            raise LedgerValidationError("Distributed amounts cannot be negative.")
        for gid in shares:
            self.group(gid)
        if round2(sum(shares.values())) != total:
            raise LedgerValidationError(
                f"Distributed amounts ({sum(shares.values()):.2f}) must equal the total ({total:.2f})."
            )
        if date is not None and not is_iso_date(date):
            raise LedgerValidationError("Date must be YYYY-MM-DD.")
        ft = FundTransfer(
            id=new_id("ft"),
            date=date or today_str(),
            type=FundTransferType(type),
            total_amount=total,
            description=description.strip(),
            distribution=shares,
        )
        self.ledger.fund_transfers.append(ft)
        self._commit(f"Added fund transfer {ft.type.value} {total:.2f}")
        return ft

    def delete_fund_transfer(self, transfer_id: str) -> None:
        before = len(self.ledger.fund_transfers)
        self.ledger.fund_transfers = [ft for ft in self.ledger.fund_transfers if ft.id != transfer_id]
        if len(self.ledger.fund_transfers) == before:
            raise LedgerValidationError(f"Unknown fund transfer '{transfer_id}'.")
        self._commit(f"Deleted fund transfer {transfer_id}")

    # ---------- internal transfers ----------

    def add_internal_transfer(
        self,
        other_group_id: str,
        amount: float,
        description: str,
        is_repayment: bool = False,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        date: Optional[str] = None,
    ) -> InternalTransfer:
        """
        Loan from the fund manager to other_group_id, or (is_repayment) money the
        group gives back; a repayment cannot exceed what the group still owes.
        """
        manager_id = self.fund_manager_id()
        if manager_id is None:
            raise LedgerValidationError("No fund manager group.")
        self.group(other_group_id)
        if other_group_id == manager_id:
            raise LedgerValidationError("Choose a group other than the fund manager.")
        amount = round2(amount)
        if amount <= 0:
            raise LedgerValidationError("Amount must be greater than zero.")
        if not description.strip():
            raise LedgerValidationError("Description is required.")
        if date is not None and not is_iso_date(date):
            raise LedgerValidationError("Date must be YYYY-MM-DD.")
        if is_repayment:
            debt = outstanding_debt(self.ledger, other_group_id, manager_id)
            if amount > round2(debt):
                raise LedgerValidationError(
                    f"Repayment ({amount:.2f}) exceeds the outstanding debt ({debt:.2f})."
                )
        it = InternalTransfer(
            id=new_id("it"),
            date=date or today_str(),
            from_group_id=other_group_id if is_repayment else manager_id,
            to_group_id=manager_id if is_repayment else other_group_id,
            amount=amount,
            payment_method=PaymentMethod(payment_method),
            description=description.strip(),
            is_repayment=is_repayment,
        )
        self.ledger.internal_transfers.append(it)
        self._commit(f"Added {'repayment' if is_repayment else 'loan'} {amount:.2f} ({it.from_group_id} -> {it.to_group_id})")
        return it

    def delete_internal_transfer(self, transfer_id: str) -> None:
        before = len(self.ledger.internal_transfers)
        self.ledger.internal_transfers = [it for it in self.ledger.internal_transfers if it.id != transfer_id]
        if len(self.ledger.internal_transfers) == before:
            raise LedgerValidationError(f"Unknown internal transfer '{transfer_id}'.")
        self._commit(f"Deleted internal transfer {transfer_id}")

    def debt_of(self, group_id: str) -> float:
        return outstanding_debt(self.ledger, group_id, self.fund_manager_id())

    # ---------- self-financing projects ----------

    def add_project(self, name: str, group_id: str) -> SelfFinancingProject:
        self.group(group_id)
        if not name.strip():
            raise LedgerValidationError("Project name is required.")
        p = SelfFinancingProject(id=new_id("sf"), name=name.strip(), group_id=group_id)
        self.ledger.self_financing_projects.append(p)
        self._commit(f"Added self-financing project '{p.name}'")
        return p

    def update_project(self, project_id: str, name: str, group_id: str) -> SelfFinancingProject:
        p = self._project(project_id)
        self.group(group_id)
        if not name.strip():
            raise LedgerValidationError("Project name is required.")
        p.name, p.group_id = name.strip(), group_id
        self._commit(f"Updated self-financing project {project_id}")
        return p

    def delete_project(self, project_id: str) -> None:
        """Remove the project; its transactions stay, unlinked"""
        p = self._project(project_id)
        self.ledger.self_financing_projects.remove(p)
        for t in self.ledger.transactions:
            if t.self_financing_id == project_id:
                t.self_financing_id = None
        self._commit(f"Deleted self-financing project {project_id}")

    # ---------- categories, units, settings ----------

    def add_category(self, name: str) -> Optional[Category]:
        """Add a category; blank or already present names (any case) are ignored"""
        name = name.strip()
        if not name or any(c.name.lower() == name.lower() for c in self.ledger.categories):
            return None
        c = Category(id=new_id("cat"), name=name)
        self.ledger.categories.append(c)
        self._commit(f"Added category '{name}'")
        return c

    def delete_category(self, category_id: str) -> None:
        self.ledger.categories = [c for c in self.ledger.categories if c.id != category_id]
        self._commit(f"Deleted category {category_id}")

    def add_unit(self, name: str) -> Optional[Unit]:
        name = name.strip()
        if not name or any(u.name.lower() == name.lower() for u in self.ledger.units):
            return None
        u = Unit(id=new_id("unit"), name=name)
        self.ledger.units.append(u)
        self._commit(f"Added unit '{name}'")
        return u

    def delete_unit(self, unit_id: str) -> None:
        self.ledger.units = [u for u in self.ledger.units if u.id != unit_id]
        self._commit(f"Deleted unit {unit_id}")

    def set_confirm_on_delete(self, value: bool) -> None:
        self.ledger.confirm_on_delete = bool(value)
        self._commit(f"confirmOnDelete set to {self.ledger.confirm_on_delete}")

    def set_user_permissions(self, permissions: UserPermissions) -> None:
        self.ledger.user_permissions = permissions.to_map()
        self._commit("Updated user permissions")

    def replace_ledger(self, ledger: Ledger) -> None:
        """Swap in a restored snapshot"""
        self.ledger = ledger
        self._commit("Replaced ledger from backup")
