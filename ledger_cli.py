"""
ScoutLedger command line

Usage:
    scout-ledger summary
    scout-ledger ledger --from 2024-09-01 --to 2024-09-30 --type EXPENSE
    scout-ledger export-csv report.csv
    scout-ledger export-xlsx report.xlsx
    scout-ledger backup ./backups
    scout-ledger validate-backup backup.json
    scout-ledger restore backup.json --yes

Dependencies:
  pip install openpyxl
"""
from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from computations import BalanceReport
from config import load_app_settings
from csv_handler import export_transactions_to_csv
from errors import BackupError, StorageError
from excel_export import export_report
from filters import ALL, Filters
from log_setup import setup_logging
from models import Ledger
from repository import (
    JsonFileRepository,
    backup_summary,
    read_backup_file,
    restore_backup,
    write_backup_file,
)
from store import LedgerStore

logger = logging.getLogger(__name__)


def _filters_from_args(args) -> Filters:
    return Filters(
        text=args.text or "",
        type=args.type,
        category=args.category,
        start_date=args.start or "",
        end_date=args.end or "",
        ledger_type=args.ledger_type,
        group_id=args.group,
    )


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--text", help="case-insensitive text in the description")
    p.add_argument("--type", default=ALL, choices=[ALL, "INCOME", "EXPENSE"])
    p.add_argument("--category", default=ALL, help="category name")
    p.add_argument("--from", dest="start", help="first date, YYYY-MM-DD")
    p.add_argument("--to", dest="end", help="last date, YYYY-MM-DD")
    p.add_argument("--ledger-type", default=ALL, choices=[
        ALL, "TRANSACTION_INCOME", "TRANSACTION_EXPENSE", "FUND_TRANSFER", "INTERNAL_TRANSFER",
    ])
    p.add_argument("--group", default=ALL, help="group id")


def format_report(ledger: Ledger, report: BalanceReport) -> str:
    """Plain-text balance report"""
    lines = []
    o = report.overall
    lines.append(f"Overall balance: {o.balance:10.2f}  (cash {o.cash_balance:.2f}, bank {o.bank_balance:.2f})")
    lines.append(f"  income {o.total_income:.2f}, expenses {o.total_expenses:.2f}")
    lines.append("")
    for g in ledger.groups:
        s = report.groups[g.id]
        mark = " *" if g.id == report.fund_manager_id else ""
        lines.append(f"{g.name + mark:<28} {s.balance:10.2f}  (cash {s.cash_balance:.2f}, bank {s.bank_balance:.2f})")
    p = report.pools
    lines.append("")
    lines.append(f"Censimento:   {p.total_censimento:10.2f}  ({p.censimento_count} members)")
    lines.append(f"BP Park fee:  {p.total_bp_park_fee:10.2f}  ({p.bp_park_fee_count} members)")
    lines.append(f"Pre-camp:     {p.total_pre_camp:10.2f}  (cash {p.pre_camp_cash:.2f}, bank {p.pre_camp_bank:.2f})")
    lines.append(f"Group fee:    {p.total_group_fee:10.2f}  (cash {p.group_fee_by_cash:.2f}, bank {p.group_fee_by_bank:.2f})")
    lines.append(f"Group fund:   {report.group_fund_balance:10.2f}")
    if report.warnings:
        lines.append("")
        lines.append(f"{len(report.warnings)} data warning(s):")
        lines.extend(f"  - {w}" for w in report.warnings)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scout-ledger", description="Group treasury bookkeeping")
    parser.add_argument("--data", help="ledger JSON file (default from settings.json)")
    parser.add_argument("--settings", help="settings.json path")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="print balances")
    p = sub.add_parser("ledger", help="print the combined ledger")
    _add_filter_args(p)
    p = sub.add_parser("export-csv", help="export transactions to CSV")
    p.add_argument("output")
    _add_filter_args(p)
    p = sub.add_parser("export-xlsx", help="export an Excel report")
    p.add_argument("output")
    _add_filter_args(p)
    p = sub.add_parser("backup", help="write a backup file")
    p.add_argument("folder")
    p = sub.add_parser("validate-backup", help="check a backup file")
    p.add_argument("file")
    p = sub.add_parser("restore", help="replace the ledger with a backup")
    p.add_argument("file")
    p.add_argument("--yes", action="store_true", help="overwrite without asking")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the command line"""
    args = build_parser().parse_args(argv)
    settings = load_app_settings(args.settings)
    setup_logging(args.log_level or settings.log_level)

    repository = JsonFileRepository(args.data or settings.data_file)
    try:
        if args.command == "validate-backup":
            print(backup_summary(read_backup_file(args.file)))
            return 0
        if args.command == "restore":
            data = read_backup_file(args.file)
            print(backup_summary(data))
            if not args.yes:
                print("Re-run with --yes to overwrite the current ledger.")
                return 1
            restore_backup(data, repository)
            print(f"Restored into {repository.path}")
            return 0

        store = LedgerStore(repository)
        if args.command == "summary":
            print(format_report(store.ledger, store.balances()))
        elif args.command == "ledger":
            names = {g.id: g.name for g in store.ledger.groups}
            for e in store.entries(_filters_from_args(args)):
                groups = ", ".join(names.get(gid, "N/A") for gid in e.groups_involved)
                print(f"{e.date}  {e.type.value:<20} {e.amount:10.2f}  {e.description}  [{groups}]")
        elif args.command == "export-csv":
            txs = store.transactions(_filters_from_args(args))
            if not txs:
                print("No transactions to export.")
                return 1
            export_transactions_to_csv(txs, store.ledger.groups, args.output)
            print(f"Exported {len(txs)} transactions to {args.output}")
        elif args.command == "export-xlsx":
            export_report(store.ledger, args.output, _filters_from_args(args))
            print(f"Exported report to {args.output}")
        elif args.command == "backup":
            print(write_backup_file(store.ledger, args.folder))
    except (BackupError, StorageError) as ex:
        logger.error("%s", ex)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
