"""
Combined ledger feed tests
"""
from builders import member, paid, tx
from ledger_feed import build_ledger_entries
from models import (
    FeeAllocations,
    FundTransfer,
    FundTransferType,
    Installment,
    InternalTransfer,
    LedgerEntryType,
    PaymentMethod,
    TransactionType,
)


def _fund_transfer(date="2024-09-15"):
    return FundTransfer(
        id="f1", date=date, type=FundTransferType.WITHDRAWAL, total_amount=100,
        description="Prelievo", distribution={"reparto": 60, "branco": 40},
    )


def _internal_transfer(date="2024-09-15"):
    return InternalTransfer(
        id="i1", date=date, from_group_id="coca", to_group_id="reparto", amount=25,
        payment_method=PaymentMethod.CASH, description="Prestito",
    )


class TestBuildLedgerEntries:
    """build_ledger_entries()"""

    def test_newest_first(self, ledger):
        ledger.transactions = [
            tx("t1", "reparto", 10, date="2024-09-01"),
            tx("t2", "reparto", 10, date="2024-11-01"),
        ]
        ledger.members = [member("m1", "reparto", second=paid(60, date="2024-10-01"))]
        dates = [e.date for e in build_ledger_entries(ledger)]
        assert dates == ["2024-11-01", "2024-10-01", "2024-09-01"]

    def test_same_day_keeps_source_order(self, ledger):
        """transactions, installments, fund transfers, internal transfers"""
        day = "2024-09-15"
        ledger.internal_transfers = [_internal_transfer(day)]
        ledger.fund_transfers = [_fund_transfer(day)]
        ledger.members = [member("m1", "reparto", second=paid(60, date=day))]
        ledger.transactions = [tx("t1", "reparto", 10, date=day)]
        types = [e.type for e in build_ledger_entries(ledger)]
        assert types == [
            LedgerEntryType.TRANSACTION_INCOME,
            LedgerEntryType.INSTALLMENT_PAYMENT,
            LedgerEntryType.FUND_TRANSFER,
            LedgerEntryType.INTERNAL_TRANSFER,
        ]

    def test_transaction_entries(self, ledger):
        t = tx("t1", "reparto", 12.5, type=TransactionType.EXPENSE, category="Cancelleria")
        ledger.transactions = [t]
        (e,) = build_ledger_entries(ledger)
        assert e.type is LedgerEntryType.TRANSACTION_EXPENSE
        assert e.amount == 12.5
        assert e.groups_involved == ["reparto"]
        assert e.original is t
        assert "Cancelleria" in e.details

    def test_installment_entries(self, ledger):
        m = member(
            "m1", "reparto", name="Luca Bianchi",
            first=paid(100, allocations=FeeAllocations.full()),
            summer_camp=paid(180, PaymentMethod.CASH, date="2025-07-01"),
        )
        ledger.members = [m]
        entries = build_ledger_entries(ledger)
        assert [e.id for e in entries] == ["m1-summer_camp", "m1-first"]
        assert all(e.original is m for e in entries)
        assert entries[1].description == "1st installment - Luca Bianchi"
        assert entries[0].groups_involved == ["reparto"]

    def test_unpaid_or_undated_installments_skipped(self, ledger):
        ledger.members = [member(
            "m1", "reparto",
            first=Installment(),
            second=Installment(amount=60, date=None, payment_method=PaymentMethod.CASH),
        )]
        assert build_ledger_entries(ledger) == []

    def test_fund_transfer_involves_distribution_groups(self, ledger):
        ledger.fund_transfers = [_fund_transfer()]
        (e,) = build_ledger_entries(ledger)
        assert e.groups_involved == ["reparto", "branco"]
        assert e.amount == 100
        assert e.details.startswith("Withdrawal")

    def test_internal_transfer_involves_both_groups(self, ledger):
        ledger.internal_transfers = [_internal_transfer()]
        (e,) = build_ledger_entries(ledger)
        assert e.groups_involved == ["coca", "reparto"]
        assert "Loan: Comunità Capi -> Reparto" in e.details

    def test_unknown_group_name(self, ledger):
        ledger.internal_transfers = [InternalTransfer(
            id="i1", date="2024-09-15", from_group_id="coca", to_group_id="gone", amount=5,
            payment_method=PaymentMethod.TRANSFER, description="x", is_repayment=True,
        )]
        (e,) = build_ledger_entries(ledger)
        assert "Repayment: Comunità Capi -> N/A" in e.details

    def test_empty_ledger(self, ledger):
        assert build_ledger_entries(ledger) == []
