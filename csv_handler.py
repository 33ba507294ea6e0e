"""
CSV export for ScoutLedger
"""
from __future__ import annotations
from typing import List

from models import Group, Transaction, TransactionType

CSV_HEADERS = [
    "ID",
    "Data",
    "Gruppo",
    "Descrizione",
    "Tipo",
    "Categoria",
    "Importo",
    "Metodo di Pagamento",
    "Spese per Campo",
    "Anticipato Da",
    "Restituita",
    "Data Restituzione",
    "Metodo Rimborso",
]


def _yes_no(flag: bool) -> str:
    return "Sì" if flag else "No"


def _amount(v: float) -> str:
    """12.0 -> '12', -7.50 -> '-7.5'"""
    s = f"{v:.2f}".rstrip("0").rstrip(".")
    return "0" if s in ("", "-0") else s


def _quoted(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _cell(value: str) -> str:
    """Quote only cells that would otherwise break the row"""
    if any(ch in value for ch in ',"\r\n'):
        return _quoted(value)
    return value


def transactions_to_csv(transactions: List[Transaction], groups: List[Group]) -> str:
    """
    Render transactions as CSV text, one header row, comma separated.
    Amount is signed: expenses are negative. The description is always quoted.
    """
    names = {g.id: g.name for g in groups}
    lines = [",".join(CSV_HEADERS)]
    for t in transactions:
        income = t.type is TransactionType.INCOME
        lines.append(",".join([
            _cell(t.id),
            _cell(t.date),
            _cell(names.get(t.group_id, "N/A")),
            _quoted(t.description),
            "Entrata" if income else "Uscita",
            _cell(t.category),
            _amount(t.signed_amount),
            t.payment_method.value,
            _yes_no(t.is_camp_expense),
            _cell(t.advanced_by or ""),
            _yes_no(t.repaid),
            t.repaid_date or "",
            t.repayment_method.value if t.repayment_method else "",
        ]))
    return "\n".join(lines) + "\n"


def export_transactions_to_csv(transactions: List[Transaction], groups: List[Group], filepath: str) -> None:
    """Write transactions_to_csv() output to a file"""
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        f.write(transactions_to_csv(transactions, groups))
