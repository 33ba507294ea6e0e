"""
Excel report export for ScoutLedger
"""
from __future__ import annotations
from typing import Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from computations import compute_advances, compute_balances, compute_project_summaries
from filters import Filters, filter_entries
from ledger_feed import build_ledger_entries
from models import Ledger, LedgerEntryType

MONEY = "#,##0.00"


HEADER_FILL = PatternFill("solid", fgColor="2E6B3F")
HEADER_BORDER = Border(bottom=Side(style="medium", color="1F4A2B"))


def _write_header(ws, titles, freeze=False):
    """Append the header row of a report sheet in the house style"""
    ws.append(titles)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True, color="FFFFFF")
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = HEADER_BORDER
    if freeze:
        ws.freeze_panes = ws.cell(ws.max_row + 1, 1).coordinate


def _display_width(value) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return len(f"{value:,.2f}")
    return len(str(value))


def _fit_columns(ws, min_width=10, max_width=45):
    """Width of each column from its longest value as displayed"""
    for idx, column in enumerate(ws.iter_cols(), start=1):
        widths = [_display_width(c.value) for c in column if c.value is not None]
        ws.column_dimensions[get_column_letter(idx)].width = max(min_width, min(max_width, max(widths, default=0) + 2))


def _money_columns(ws, first_col: int, last_col: int, first_row: int = 2):
    for r in range(first_row, ws.max_row + 1):
        for c in range(first_col, last_col + 1):
            ws.cell(r, c).number_format = MONEY


def export_report(ledger: Ledger, filepath: str, filters: Optional[Filters] = None) -> None:
    """
    Export the ledger to an Excel file with sheets:
    - Summary: overall and per-group cash/bank figures
    - Fund Pools: censimento, BP park fee, pre-camp, group fee
    - Ledger: combined feed (filtered when filters are given)
    - Advances and Self-financing
    """
    report = compute_balances(ledger)
    wb = Workbook()
    wb.remove(wb.active)

    # Summary
    ws = wb.create_sheet("Summary")
    _write_header(ws, ["Account", "Cash income", "Bank income", "Cash expenses", "Bank expenses",
               "Cash", "Bank", "Balance", "Pre-camp cash", "Pre-camp bank"], freeze=True)
    o = report.overall
    ws.append(["All groups", o.cash_income, o.bank_income, o.cash_expenses, o.bank_expenses,
               o.cash_balance, o.bank_balance, o.balance, None, None])
    ws.cell(ws.max_row, 1).font = Font(bold=True)
    for g in ledger.groups:
        s = report.groups[g.id]
        name = f"{g.name} (fund manager)" if g.id == report.fund_manager_id else g.name
        ws.append([name, s.cash_income, s.bank_income, s.cash_expenses, s.bank_expenses,
                   s.cash_balance, s.bank_balance, s.balance, s.pre_camp_cash, s.pre_camp_bank])
    _money_columns(ws, 2, 10)
    _fit_columns(ws)

    # Fund pools
    ws = wb.create_sheet("Fund Pools")
    _write_header(ws, ["Pool", "Total", "Cash", "Bank", "Members"])
    p = report.pools
    ws.append(["Censimento", p.total_censimento, None, None, p.censimento_count])
    ws.append(["BP Park fee", p.total_bp_park_fee, None, None, p.bp_park_fee_count])
    ws.append(["Pre-camp", p.total_pre_camp, p.pre_camp_cash, p.pre_camp_bank, None])
    ws.append(["Group fee", p.total_group_fee, p.group_fee_by_cash, p.group_fee_by_bank, None])
    ws.append(["Group fund balance", report.group_fund_balance, None, None, None])
    ws.cell(ws.max_row, 1).font = Font(bold=True)
    _money_columns(ws, 2, 4)
    _fit_columns(ws)

    # Ledger
    ws = wb.create_sheet("Ledger")
    _write_header(ws, ["Date", "Type", "Description", "Details", "Groups", "Amount"], freeze=True)
    names = {g.id: g.name for g in ledger.groups}
    entries = build_ledger_entries(ledger)
    if filters is not None:
        entries = filter_entries(entries, filters)
    for e in entries:
        amount = -e.amount if e.type is LedgerEntryType.TRANSACTION_EXPENSE else e.amount
        groups = ", ".join(names[gid] for gid in e.groups_involved if gid in names)
        ws.append([e.date, e.type.value, e.description, e.details, groups, amount])
    _money_columns(ws, 6, 6)
    _fit_columns(ws)

    # Advances
    ws = wb.create_sheet("Advances")
    _write_header(ws, ["Person", "Date", "Description", "Amount", "Repaid", "Repaid on"])
    advances = compute_advances(ledger.transactions)
    for person, data in advances["by_person"].items():
        for t in data["transactions"]:
            ws.append([person, t.date, t.description, t.amount, "yes" if t.repaid else "no", t.repaid_date or ""])
    ws.append(["TOTAL TO REPAY", None, None, advances["total_to_repay"], None, None])
    ws.cell(ws.max_row, 1).font = Font(bold=True)
    _money_columns(ws, 4, 4)
    _fit_columns(ws)

    # Self-financing
    ws = wb.create_sheet("Self-financing")
    _write_header(ws, ["Project", "Group", "Income", "Expenses", "Profit"])
    for s in compute_project_summaries(ledger.self_financing_projects, ledger.transactions):
        project = s["project"]
        ws.append([project.name, names.get(project.group_id, "N/A"), s["income"], s["expenses"], s["profit"]])
    _money_columns(ws, 3, 5)
    _fit_columns(ws)

    wb.save(filepath)
