"""
Data models for ScoutLedger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from utils import round2


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethod(str, Enum):
    """Payment rail; the stored values are the labels used in saved data"""
    CASH = "Contanti"
    TRANSFER = "Bonifico"
    CARD = "Bancomat"


class FundTransferType(str, Enum):
    WITHDRAWAL = "WITHDRAWAL"  # bank -> group cashboxes
    DEPOSIT = "DEPOSIT"  # group cashboxes -> bank


class LedgerEntryType(str, Enum):
    TRANSACTION_INCOME = "TRANSACTION_INCOME"
    TRANSACTION_EXPENSE = "TRANSACTION_EXPENSE"
    INSTALLMENT_PAYMENT = "INSTALLMENT_PAYMENT"
    FUND_TRANSFER = "FUND_TRANSFER"
    INTERNAL_TRANSFER = "INTERNAL_TRANSFER"


FIRST = "first"
SECOND = "second"
THIRD = "third"
SUMMER_CAMP = "summer_camp"
INSTALLMENT_KEYS: Tuple[str, ...] = (FIRST, SECOND, THIRD, SUMMER_CAMP)

SIBLINGS_OPTIONS: Tuple[str, ...] = ("0", "1", "2", ">2")

# fixed-fee buckets a first installment can cover
FEE_BUCKETS: Tuple[str, ...] = ("censimento", "bp_park_fee", "group_fee", "pre_camp")


@dataclass
class QuoteSettings:
    """Per-group fee schedule"""
    installments: Dict[str, float] = field(
        default_factory=lambda: {k: 0.0 for k in INSTALLMENT_KEYS}
    )
    sibling_discounts: Dict[str, float] = field(
        default_factory=lambda: {k: 0.0 for k in SIBLINGS_OPTIONS}
    )  # percent
    group_fee: float = 0.0
    bp_park_fee: float = 0.0
    censimento: float = 0.0
    pre_camp: float = 0.0

    def fee(self, bucket: str) -> float:
        return float(getattr(self, bucket) or 0.0)


@dataclass
class Group:
    id: str
    name: str
    color: str
    quote_settings: QuoteSettings = field(default_factory=QuoteSettings)


@dataclass
class FeeAllocations:
    """Which fixed fees a first-installment payment is deemed to cover"""
    censimento: bool = False
    bp_park_fee: bool = False
    group_fee: bool = False
    pre_camp: bool = False

    @classmethod
    def full(cls) -> "FeeAllocations":
        return cls(censimento=True, bp_park_fee=True, group_fee=True, pre_camp=True)

    def selected(self) -> List[str]:
        return [b for b in FEE_BUCKETS if getattr(self, b)]

    def allocated_total(self, settings: QuoteSettings) -> float:
        return round2(sum(settings.fee(b) for b in self.selected()))


@dataclass
class Installment:
    amount: float = 0.0
    date: Optional[str] = None  # YYYY-MM-DD
    payment_method: Optional[PaymentMethod] = None
    allocations: Optional[FeeAllocations] = None  # first installment only

    @property
    def is_paid(self) -> bool:
        return self.amount > 0


@dataclass
class MemberInstallments:
    first: Installment = field(default_factory=Installment)
    second: Installment = field(default_factory=Installment)
    third: Installment = field(default_factory=Installment)
    summer_camp: Installment = field(default_factory=Installment)

    def get(self, key: str) -> Installment:
        if key not in INSTALLMENT_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def items(self) -> Iterator[Tuple[str, Installment]]:
        for key in INSTALLMENT_KEYS:
            yield key, getattr(self, key)


@dataclass
class Member:
    id: str
    group_id: str
    name: str
    unit: str = ""
    siblings: str = "0"  # one of SIBLINGS_OPTIONS
    installments: MemberInstallments = field(default_factory=MemberInstallments)


@dataclass
class Transaction:
    id: str
    group_id: str
    description: str
    amount: float  # always positive, sign comes from type
    date: str  # YYYY-MM-DD
    type: TransactionType
    category: str
    payment_method: PaymentMethod
    is_camp_expense: bool = False
    advanced_by: Optional[str] = None
    repaid: bool = False
    repaid_date: Optional[str] = None
    repayment_method: Optional[PaymentMethod] = None
    self_financing_id: Optional[str] = None

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type is TransactionType.INCOME else -self.amount


@dataclass
class FundTransfer:
    id: str
    date: str
    type: FundTransferType
    total_amount: float
    description: str
    distribution: Dict[str, float]  # group id -> share of total_amount


@dataclass
class InternalTransfer:
    """Loan (is_repayment=False) or repayment between two groups"""
    id: str
    date: str
    from_group_id: str
    to_group_id: str
    amount: float
    payment_method: PaymentMethod
    description: str
    is_repayment: bool = False


@dataclass
class SelfFinancingProject:
    id: str
    name: str
    group_id: str


@dataclass
class Category:
    id: str
    name: str


@dataclass
class Unit:
    id: str
    name: str


@dataclass
class LedgerEntry:
    """Uniform projection of any recorded event, never stored"""
    id: str
    date: str
    type: LedgerEntryType
    description: str
    amount: float
    details: str
    groups_involved: List[str]
    original: Any


@dataclass
class Ledger:
    """Complete snapshot of the stored state"""
    transactions: List[Transaction] = field(default_factory=list)
    groups: List[Group] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    units: List[Unit] = field(default_factory=list)
    categories: List[Category] = field(default_factory=list)
    fund_transfers: List[FundTransfer] = field(default_factory=list)
    internal_transfers: List[InternalTransfer] = field(default_factory=list)
    self_financing_projects: List[SelfFinancingProject] = field(default_factory=list)
    confirm_on_delete: bool = True
    group_fund_manager_id: Optional[str] = None
    user_permissions: Dict[str, bool] = field(default_factory=dict)
    version: int = 1

    def group_map(self) -> Dict[str, Group]:
        return {g.id: g for g in self.groups}
