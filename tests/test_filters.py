"""
Search filter tests
"""
import pytest

from builders import member, paid, tx
from filters import ALL, Filters, filter_entries, filter_transactions
from ledger_feed import build_ledger_entries
from models import (
    FundTransfer,
    FundTransferType,
    InternalTransfer,
    LedgerEntryType,
    PaymentMethod,
    TransactionType,
)


@pytest.fixture
def entries(ledger):
    ledger.transactions = [
        tx("t1", "reparto", 40, description="Quota uscita", date="2024-09-05", category="Attività"),
        tx("t2", "branco", 15, type=TransactionType.EXPENSE, description="Cancelleria",
           date="2024-09-20", category="Materiale"),
        tx("t3", "reparto", 30, type=TransactionType.EXPENSE, description="Tende", date="2024-10-02"),
    ]
    ledger.members = [member("m1", "reparto", name="Giulia", second=paid(60, date="2024-09-25"))]
    ledger.fund_transfers = [FundTransfer(
        id="f1", date="2024-09-10", type=FundTransferType.WITHDRAWAL, total_amount=50,
        description="Prelievo", distribution={"branco": 50},
    )]
    ledger.internal_transfers = [InternalTransfer(
        id="i1", date="2024-09-30", from_group_id="coca", to_group_id="reparto", amount=20,
        payment_method=PaymentMethod.CASH, description="Prestito uscita",
    )]
    return build_ledger_entries(ledger)


def _ids(entries):
    return sorted(e.id for e in entries)


class TestFilterEntries:
    """filter_entries()"""

    def test_no_filters_keeps_everything(self, entries):
        assert not Filters().is_active()
        assert filter_entries(entries, Filters()) == entries

    def test_text_is_case_insensitive(self, entries):
        assert _ids(filter_entries(entries, Filters(text="USCITA"))) == ["i1", "t1"]

    def test_income_includes_installments(self, entries):
        got = filter_entries(entries, Filters(type="INCOME"))
        assert _ids(got) == ["m1-second", "t1"]

    def test_expense(self, entries):
        assert _ids(filter_entries(entries, Filters(type="EXPENSE"))) == ["t2", "t3"]

    def test_category_excludes_non_transactions(self, entries):
        assert _ids(filter_entries(entries, Filters(category="Materiale"))) == ["t2", "t3"]

    def test_date_range_is_inclusive(self, entries):
        f = Filters(start_date="2024-09-10", end_date="2024-09-25")
        assert _ids(filter_entries(entries, f)) == ["f1", "m1-second", "t2"]

    def test_ledger_type_income_includes_installments(self, entries):
        f = Filters(ledger_type=LedgerEntryType.TRANSACTION_INCOME.value)
        assert _ids(filter_entries(entries, f)) == ["m1-second", "t1"]

    def test_ledger_type(self, entries):
        f = Filters(ledger_type=LedgerEntryType.INTERNAL_TRANSFER.value)
        assert _ids(filter_entries(entries, f)) == ["i1"]

    def test_group_matches_any_involved_group(self, entries):
        assert _ids(filter_entries(entries, Filters(group_id="branco"))) == ["f1", "t2"]
        assert _ids(filter_entries(entries, Filters(group_id="coca"))) == ["i1"]

    def test_filters_combine(self, entries):
        f = Filters(group_id="reparto", type="EXPENSE", end_date="2024-12-31")
        assert f.is_active()
        assert _ids(filter_entries(entries, f)) == ["t3"]

    def test_keeps_feed_order(self, entries):
        got = filter_entries(entries, Filters(group_id="reparto"))
        assert [e.date for e in got] == sorted((e.date for e in got), reverse=True)

    def test_result_is_a_subset(self, entries):
        """Every filtered entry satisfies every active filter"""
        f = Filters(text="e", start_date="2024-09-06")
        got = filter_entries(entries, f)
        assert got
        for e in got:
            assert e in entries
            assert "e" in e.description.lower()
            assert e.date >= "2024-09-06"


class TestFilterTransactions:
    """filter_transactions()"""

    def test_by_type_and_group(self, ledger, entries):
        got = filter_transactions(ledger.transactions, Filters(type="EXPENSE", group_id="reparto"))
        assert [t.id for t in got] == ["t3"]

    def test_by_category_and_text(self, ledger, entries):
        got = filter_transactions(ledger.transactions, Filters(category="Materiale", text="tend"))
        assert [t.id for t in got] == ["t3"]

    def test_all(self, ledger, entries):
        assert len(filter_transactions(ledger.transactions, Filters(type=ALL))) == 3
