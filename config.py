"""
Configuration, seed data and data loading/saving for ScoutLedger.

Stored data uses the camelCase keys of the ledger file / backup format. Reading is
tolerant: every collection goes through a migration that drops unusable records and
fills missing or malformed fields with defaults instead of failing.
"""
from __future__ import annotations
import copy
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from allocation import total_fixed_fees
from models import (
    FIRST,
    SIBLINGS_OPTIONS,
    SUMMER_CAMP,
    Category,
    FeeAllocations,
    FundTransfer,
    FundTransferType,
    Group,
    Installment,
    InternalTransfer,
    Ledger,
    Member,
    MemberInstallments,
    PaymentMethod,
    QuoteSettings,
    SelfFinancingProject,
    Transaction,
    TransactionType,
    Unit,
)
from permissions import default_user_permission_map
from utils import app_dir, is_iso_date, new_id, today_str

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
DEFAULT_DATA_FILE = "ledger.json"

GROUP_COLORS = ["blue", "green", "purple", "yellow", "red", "orange", "teal", "pink"]

INITIAL_QUOTE_SETTINGS: Dict[str, Any] = {
    "installments": {"first": 120.0, "second": 60.0, "third": 60.0, "summerCamp": 180.0},
    "siblingDiscounts": {"0": 0.0, "1": 10.0, "2": 20.0, ">2": 30.0},
    "groupFee": 6.0,
    "bpParkFee": 1.0,
    "censimento": 40.0,
    "preCamp": 15.0,
}

INITIAL_GROUPS: List[Dict[str, Any]] = [
    {"id": "group_coca", "name": "Comunità Capi", "color": "blue"},
    {"id": "group_branco", "name": "Branco", "color": "yellow"},
    {"id": "group_reparto", "name": "Reparto", "color": "green"},
    {"id": "group_clan", "name": "Clan", "color": "red"},
]

INITIAL_CATEGORIES: List[Dict[str, str]] = [
    {"id": "cat1", "name": "Cibo & Bevande"},
    {"id": "cat2", "name": "Trasporti"},
    {"id": "cat3", "name": "Materiale"},
    {"id": "cat4", "name": "Affitto Sede"},
    {"id": "cat5", "name": "Manutenzione"},
]

INITIAL_UNITS: List[Dict[str, str]] = [
    {"id": "unit1", "name": "Squadriglia Aquile"},
    {"id": "unit2", "name": "Squadriglia Volpi"},
    {"id": "unit3", "name": "Sestiglia Rossi"},
]

# stored key -> model attribute
_INSTALLMENT_JSON_KEYS = {"first": "first", "second": "second", "third": "third", "summerCamp": SUMMER_CAMP}
_ALLOCATION_JSON_KEYS = {
    "censimento": "censimento",
    "bpParkFee": "bp_park_fee",
    "groupFee": "group_fee",
    "preCamp": "pre_camp",
}


@dataclass
class AppSettings:
    data_file: str
    log_level: str = "INFO"
    admin_pin_sha256: Optional[str] = None


def load_app_settings(path: Optional[str] = None) -> AppSettings:
    """Load settings.json from the app directory (defaults when missing)"""
    base = app_dir()
    path = path or os.path.join(base, SETTINGS_FILE)
    data: Dict[str, Any] = {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if isinstance(loaded, dict):
            data = loaded
        else:
            logger.warning("Ignoring %s: not a JSON object", path)
    except FileNotFoundError:
        pass
    except json.JSONDecodeError as ex:
        logger.warning("Ignoring %s: %s", path, ex)

    data_file = data.get("data_file") or os.path.join(base, DEFAULT_DATA_FILE)
    return AppSettings(
        data_file=os.path.expanduser(str(data_file)),
        log_level=str(data.get("log_level") or "INFO").upper(),
        admin_pin_sha256=data.get("admin_pin_sha256") or None,
    )


# ---------- field helpers ----------

def _is_number(x) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _num(x, default: float = 0.0) -> float:
    return float(x) if _is_number(x) else default


def _str(x, default: str = "") -> str:
    return x if isinstance(x, str) and x else default


def _opt_str(x) -> Optional[str]:
    return x if isinstance(x, str) and x else None


def _date(x) -> str:
    return x if is_iso_date(x) else today_str()


def parse_payment_method(value, default: Optional[PaymentMethod] = None) -> Optional[PaymentMethod]:
    """Accept the stored label ("Contanti") or the name ("CASH")"""
    if isinstance(value, PaymentMethod):
        return value
    if isinstance(value, str):
        for pm in PaymentMethod:
            if value == pm.value or value.upper() == pm.name:
                return pm
    return default


def _records(data) -> List[dict]:
    return [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []


# ---------- migration ----------

def migrate_quote_settings(qs) -> QuoteSettings:
    initial = copy.deepcopy(INITIAL_QUOTE_SETTINGS)
    if not isinstance(qs, dict):
        qs = {}
    installments = dict(initial["installments"])
    if isinstance(qs.get("installments"), dict):
        installments.update({k: v for k, v in qs["installments"].items() if _is_number(v)})
    discounts = dict(initial["siblingDiscounts"])
    if isinstance(qs.get("siblingDiscounts"), dict):
        discounts.update({k: v for k, v in qs["siblingDiscounts"].items() if _is_number(v)})
    return QuoteSettings(
        installments={
            attr: float(installments.get(key, 0.0)) for key, attr in _INSTALLMENT_JSON_KEYS.items()
        },
        sibling_discounts={k: float(discounts.get(k, 0.0)) for k in SIBLINGS_OPTIONS},
        group_fee=_num(qs.get("groupFee"), initial["groupFee"]),
        bp_park_fee=_num(qs.get("bpParkFee"), initial["bpParkFee"]),
        censimento=_num(qs.get("censimento"), initial["censimento"]),
        pre_camp=_num(qs.get("preCamp"), initial["preCamp"]),
    )


def migrate_groups(data) -> List[Group]:
    if not isinstance(data, list):
        data = copy.deepcopy(INITIAL_GROUPS)
    out = []
    for i, g in enumerate(_records(data)):
        out.append(Group(
            id=_str(g.get("id"), new_id("group")),
            name=_str(g.get("name"), f"Gruppo {i + 1}"),
            color=_str(g.get("color"), GROUP_COLORS[i % len(GROUP_COLORS)]),
            quote_settings=migrate_quote_settings(g.get("quoteSettings")),
        ))
    return out


def _migrate_allocations(a) -> Optional[FeeAllocations]:
    if not isinstance(a, dict):
        return None
    return FeeAllocations(**{attr: bool(a.get(key)) for key, attr in _ALLOCATION_JSON_KEYS.items()})


def _migrate_installment(raw, key: str, settings: Optional[QuoteSettings]) -> Installment:
    if not isinstance(raw, dict):
        return Installment()
    amount = _num(raw.get("amount"))
    if amount <= 0:
        return Installment()
    inst = Installment(
        amount=amount,
        date=_date(raw.get("date")),
        payment_method=parse_payment_method(raw.get("paymentMethod"), PaymentMethod.CASH),
    )
    if key == FIRST:
        inst.allocations = _migrate_allocations(raw.get("allocations"))
        if inst.allocations is None and settings is not None and amount >= total_fixed_fees(settings):
            inst.allocations = FeeAllocations.full()
    return inst


def migrate_members(data, groups: List[Group]) -> List[Member]:
    settings_by_group = {g.id: g.quote_settings for g in groups}
    out = []
    for m in _records(data):
        group_id = _str(m.get("groupId"))
        settings = settings_by_group.get(group_id)
        raw = m.get("installments") if isinstance(m.get("installments"), dict) else {}
        installments = MemberInstallments(**{
            attr: _migrate_installment(raw.get(key), attr, settings)
            for key, attr in _INSTALLMENT_JSON_KEYS.items()
        })
        siblings = m.get("siblings")
        out.append(Member(
            id=_str(m.get("id"), new_id("member")),
            group_id=group_id,
            name=_str(m.get("name")),
            unit=_str(m.get("unit")),
            siblings=siblings if siblings in SIBLINGS_OPTIONS else "0",
            installments=installments,
        ))
    return out


def migrate_transactions(data) -> List[Transaction]:
    out = []
    for t in _records(data):
        out.append(Transaction(
            id=_str(t.get("id"), new_id("tx")),
            group_id=_str(t.get("groupId")),
            description=_str(t.get("description")),
            amount=_num(t.get("amount")),
            date=_date(t.get("date")),
            type=TransactionType.INCOME if t.get("type") == "INCOME" else TransactionType.EXPENSE,
            category=_str(t.get("category")),
            payment_method=parse_payment_method(t.get("paymentMethod"), PaymentMethod.CASH),
            is_camp_expense=bool(t.get("isCampExpense")),
            advanced_by=_opt_str(t.get("advancedBy")),
            repaid=bool(t.get("repaid")),
            repaid_date=_opt_str(t.get("repaidDate")),
            repayment_method=parse_payment_method(t.get("repaymentMethod")),
            self_financing_id=_opt_str(t.get("selfFinancingId")),
        ))
    return out


def _migrate_named(data, cls, prefix: str, initial: List[Dict[str, str]]):
    if not isinstance(data, list):
        data = copy.deepcopy(initial)
    return [
        cls(id=_str(r.get("id"), new_id(prefix)), name=r["name"])
        for r in _records(data)
        if isinstance(r.get("name"), str) and r.get("name")
    ]


def migrate_categories(data) -> List[Category]:
    return _migrate_named(data, Category, "cat", INITIAL_CATEGORIES)


def migrate_units(data) -> List[Unit]:
    return _migrate_named(data, Unit, "unit", INITIAL_UNITS)


def migrate_fund_transfers(data) -> List[FundTransfer]:
    out = []
    for ft in _records(data):
        dist = ft.get("distribution") if isinstance(ft.get("distribution"), dict) else {}
        out.append(FundTransfer(
            id=_str(ft.get("id"), new_id("ft")),
            date=_date(ft.get("date")),
            type=FundTransferType.DEPOSIT if ft.get("type") == "DEPOSIT" else FundTransferType.WITHDRAWAL,
            total_amount=_num(ft.get("totalAmount")),
            description=_str(ft.get("description")),
            distribution={str(k): float(v) for k, v in dist.items() if _is_number(v)},
        ))
    return out


def migrate_internal_transfers(data) -> List[InternalTransfer]:
    out = []
    for it in _records(data):
        out.append(InternalTransfer(
            id=_str(it.get("id"), new_id("it")),
            date=_date(it.get("date")),
            from_group_id=_str(it.get("fromGroupId")),
            to_group_id=_str(it.get("toGroupId")),
            amount=_num(it.get("amount")),
            payment_method=parse_payment_method(it.get("paymentMethod"), PaymentMethod.CASH),
            description=_str(it.get("description")),
            is_repayment=bool(it.get("isRepayment")),
        ))
    return out


def migrate_projects(data) -> List[SelfFinancingProject]:
    return [
        SelfFinancingProject(
            id=_str(p.get("id"), new_id("sf")),
            name=p["name"],
            group_id=_str(p.get("groupId")),
        )
        for p in _records(data)
        if isinstance(p.get("name"), str) and p.get("name")
    ]


def migrate_user_permissions(data) -> Dict[str, bool]:
    perms = default_user_permission_map()
    if isinstance(data, dict):
        perms.update({k: v for k, v in data.items() if k in perms and isinstance(v, bool)})
    return perms


def dict_to_ledger(d) -> Ledger:
    """Convert a stored dictionary (possibly old or damaged) to a Ledger"""
    if not isinstance(d, dict):
        logger.warning("Stored ledger is not an object; starting from defaults")
        d = {}
    groups = migrate_groups(d.get("groups"))
    manager = d.get("groupFundManagerId")
    return Ledger(
        transactions=migrate_transactions(d.get("transactions")),
        groups=groups,
        members=migrate_members(d.get("members"), groups),
        units=migrate_units(d.get("units")),
        categories=migrate_categories(d.get("categories")),
        fund_transfers=migrate_fund_transfers(d.get("fundTransfers")),
        internal_transfers=migrate_internal_transfers(d.get("internalTransfers")),
        self_financing_projects=migrate_projects(d.get("selfFinancingProjects")),
        confirm_on_delete=d["confirmOnDelete"] if isinstance(d.get("confirmOnDelete"), bool) else True,
        group_fund_manager_id=manager if isinstance(manager, str) and manager else None,
        user_permissions=migrate_user_permissions(d.get("userPermissions")),
        version=int(d["version"]) if _is_number(d.get("version")) else 1,
    )


def get_default_ledger() -> Ledger:
    """Fresh ledger with the seed groups, categories and units"""
    return dict_to_ledger({})


# ---------- serialisation ----------

def _quote_settings_to_dict(qs: QuoteSettings) -> dict:
    return {
        "installments": {key: qs.installments.get(attr, 0.0) for key, attr in _INSTALLMENT_JSON_KEYS.items()},
        "siblingDiscounts": dict(qs.sibling_discounts),
        "groupFee": qs.group_fee,
        "bpParkFee": qs.bp_park_fee,
        "censimento": qs.censimento,
        "preCamp": qs.pre_camp,
    }


def _installment_to_dict(inst: Installment) -> dict:
    d = {
        "amount": inst.amount,
        "date": inst.date,
        "paymentMethod": inst.payment_method.value if inst.payment_method else None,
    }
    if inst.allocations is not None:
        d["allocations"] = {
            key: getattr(inst.allocations, attr) for key, attr in _ALLOCATION_JSON_KEYS.items()
        }
    return d


def transaction_to_dict(t: Transaction) -> dict:
    return {
        "id": t.id,
        "groupId": t.group_id,
        "description": t.description,
        "amount": t.amount,
        "date": t.date,
        "type": t.type.value,
        "category": t.category,
        "paymentMethod": t.payment_method.value,
        "isCampExpense": t.is_camp_expense,
        "advancedBy": t.advanced_by,
        "repaid": t.repaid,
        "repaidDate": t.repaid_date,
        "repaymentMethod": t.repayment_method.value if t.repayment_method else None,
        "selfFinancingId": t.self_financing_id,
    }


def ledger_to_dict(ledger: Ledger) -> dict:
    """Convert Ledger object to dictionary for JSON serialization"""
    return {
        "version": ledger.version,
        "transactions": [transaction_to_dict(t) for t in ledger.transactions],
        "categories": [{"id": c.id, "name": c.name} for c in ledger.categories],
        "groups": [
            {"id": g.id, "name": g.name, "color": g.color,
             "quoteSettings": _quote_settings_to_dict(g.quote_settings)}
            for g in ledger.groups
        ],
        "members": [
            {
                "id": m.id,
                "groupId": m.group_id,
                "name": m.name,
                "unit": m.unit,
                "siblings": m.siblings,
                "installments": {
                    key: _installment_to_dict(m.installments.get(attr))
                    for key, attr in _INSTALLMENT_JSON_KEYS.items()
                },
            }
            for m in ledger.members
        ],
        "units": [{"id": u.id, "name": u.name} for u in ledger.units],
        "fundTransfers": [
            {
                "id": ft.id,
                "date": ft.date,
                "type": ft.type.value,
                "totalAmount": ft.total_amount,
                "description": ft.description,
                "distribution": dict(ft.distribution),
            }
            for ft in ledger.fund_transfers
        ],
        "internalTransfers": [
            {
                "id": it.id,
                "date": it.date,
                "fromGroupId": it.from_group_id,
                "toGroupId": it.to_group_id,
                "amount": it.amount,
                "paymentMethod": it.payment_method.value,
                "description": it.description,
                "isRepayment": it.is_repayment,
            }
            for it in ledger.internal_transfers
        ],
        "selfFinancingProjects": [
            {"id": p.id, "name": p.name, "groupId": p.group_id}
            for p in ledger.self_financing_projects
        ],
        "confirmOnDelete": ledger.confirm_on_delete,
        "groupFundManagerId": ledger.group_fund_manager_id,
        "userPermissions": dict(ledger.user_permissions),
    }
