"""
Fee allocation tests
"""
import pytest

from allocation import (
    attribute_installment,
    group_fee_paid,
    record_installment,
    resolve_allocation,
    suggest_amount,
    total_fixed_fees,
)
from builders import member, paid
from errors import AllocationError, AllocationRequired, LedgerValidationError
from models import FeeAllocations, Installment, PaymentMethod, QuoteSettings


class TestSuggestAmount:
    """suggest_amount()"""

    def test_first_installment_with_sibling_discount(self, settings):
        """base 100, 20% for two siblings -> 80.00"""
        m = member("m1", "reparto", siblings="2")
        assert suggest_amount(m, "first", settings) == 80.00

    def test_rounds_to_cents(self, settings):
        settings.installments["first"] = 99.99
        m = member("m1", "reparto", siblings="1")
        assert suggest_amount(m, "first", settings) == 89.99

    def test_paid_slot_keeps_its_amount(self, settings):
        m = member("m1", "reparto", siblings="2", first=paid(73.5))
        assert suggest_amount(m, "first", settings) == 73.5

    def test_other_slots_have_no_suggestion(self, settings):
        m = member("m1", "reparto")
        assert suggest_amount(m, "second", settings) == 0.0
        assert suggest_amount(m, "summer_camp", settings) == 0.0

    def test_paid_other_slot_keeps_amount(self, settings):
        m = member("m1", "reparto", third=paid(55))
        assert suggest_amount(m, "third", settings) == 55

    def test_no_base_amount(self, settings):
        settings.installments["first"] = 0.0
        assert suggest_amount(member("m1", "reparto"), "first", settings) == 0.0


class TestResolveAllocation:
    """resolve_allocation()"""

    def test_total_fixed_fees(self, settings):
        assert total_fixed_fees(settings) == 62

    def test_full_payment_covers_everything(self, settings):
        alloc = resolve_allocation(62, settings)
        assert alloc == FeeAllocations.full()

    def test_full_payment_ignores_selection(self, settings):
        alloc = resolve_allocation(100, settings, FeeAllocations(censimento=True))
        assert alloc == FeeAllocations.full()

    def test_nothing_paid(self, settings):
        assert resolve_allocation(0, settings) is None

    def test_partial_payment_needs_selection(self, settings):
        """50 < 62: the caller has to choose the fees"""
        with pytest.raises(AllocationRequired) as info:
            resolve_allocation(50, settings)
        assert info.value.total_fixed_fees == 62

    def test_partial_selection_within_amount(self, settings):
        """censimento + bp park + group fee = 47 <= 50"""
        selection = FeeAllocations(censimento=True, bp_park_fee=True, group_fee=True)
        alloc = resolve_allocation(50, settings, selection)
        assert alloc == selection
        assert alloc.allocated_total(settings) <= 50

    def test_selection_exceeding_amount_is_rejected(self, settings):
        """all four = 62 > 50"""
        with pytest.raises(AllocationError):
            resolve_allocation(50, settings, FeeAllocations.full())

    def test_allocation_required_is_an_allocation_error(self):
        assert issubclass(AllocationRequired, AllocationError)


class TestRecordInstallment:
    """record_installment()"""

    def test_zero_amount_clears_slot(self, settings):
        inst = record_installment(paid(80), "second", 0, "2024-10-01", PaymentMethod.CASH, settings)
        assert inst == Installment()
        assert inst.date is None and inst.payment_method is None

    def test_paid_needs_method(self, settings):
        with pytest.raises(LedgerValidationError):
            record_installment(Installment(), "second", 60, "2024-10-01", None, settings)

    def test_negative_amount(self, settings):
        with pytest.raises(LedgerValidationError):
            record_installment(Installment(), "second", -1, "2024-10-01", PaymentMethod.CASH, settings)

    def test_other_slots_track_no_allocation(self, settings):
        inst = record_installment(Installment(), "second", 60, "2024-10-01", PaymentMethod.CASH, settings)
        assert inst.allocations is None
        assert inst.amount == 60

    def test_missing_date_defaults_to_today(self, settings):
        inst = record_installment(Installment(), "third", 60, None, PaymentMethod.CASH, settings)
        assert inst.date is not None

    def test_full_first_installment(self, settings):
        inst = record_installment(Installment(), "first", 100, "2024-10-01", PaymentMethod.TRANSFER, settings)
        assert inst.allocations == FeeAllocations.full()

    def test_editing_full_payment_down_requires_new_selection(self, settings):
        """The all-fees allocation no longer fits 50"""
        current = paid(100, allocations=FeeAllocations.full())
        with pytest.raises(AllocationRequired):
            record_installment(current, "first", 50, "2024-10-01", PaymentMethod.TRANSFER, settings)

    def test_editing_reuses_allocation_that_still_fits(self, settings):
        current = paid(50, allocations=FeeAllocations(censimento=True))
        inst = record_installment(current, "first", 45, "2024-10-02", PaymentMethod.CASH, settings)
        assert inst.allocations == FeeAllocations(censimento=True)

    def test_editing_with_new_selection(self, settings):
        current = paid(100, allocations=FeeAllocations.full())
        selection = FeeAllocations(censimento=True, group_fee=True)
        inst = record_installment(current, "first", 50, "2024-10-01", PaymentMethod.CASH, settings, selection)
        assert inst.allocations == selection

    def test_unknown_slot(self, settings):
        with pytest.raises(LedgerValidationError):
            record_installment(Installment(), "fourth", 10, None, PaymentMethod.CASH, settings)


class TestAttribution:
    """attribute_installment() and the group-fee rule"""

    def test_full_first_installment(self, settings):
        a = attribute_installment("first", paid(100, allocations=FeeAllocations.full()), settings)
        assert a.group_amount == pytest.approx(38)
        assert (a.group_fee, a.censimento, a.bp_park_fee, a.pre_camp_deducted) == (6, 40, 1, 15)
        assert a.pre_camp_pool == 15

    def test_first_group_fee_needs_flag(self, settings):
        inst = paid(50, allocations=FeeAllocations(censimento=True))
        assert not group_fee_paid("first", inst)
        a = attribute_installment("first", inst, settings)
        assert a.group_fee == 0
        assert a.group_amount == pytest.approx(10)

    def test_first_without_allocations_goes_to_group(self, settings):
        a = attribute_installment("first", paid(50), settings)
        assert a.group_amount == 50
        assert a.group_fee == 0

    def test_second_and_third_always_pay_group_fee(self, settings):
        """group fee is taken from any paid second/third installment"""
        for key in ("second", "third"):
            a = attribute_installment(key, paid(60), settings)
            assert group_fee_paid(key, paid(60))
            assert a.group_fee == 6
            assert a.group_amount == 54
            assert a.pre_camp_deducted == 0
            assert a.pre_camp_pool == 15

    def test_summer_camp_is_all_group_income(self, settings):
        a = attribute_installment("summer_camp", paid(180), settings)
        assert a.group_amount == 180
        assert a.group_fee == 0 and a.pre_camp_pool == 0

    def test_group_amount_never_negative(self, settings):
        a = attribute_installment("second", paid(4), settings)
        assert a.group_amount == 0
        assert a.group_fee == 6

    def test_unpaid(self, settings):
        a = attribute_installment("first", Installment(), settings)
        assert a.group_amount == 0 and a.group_fee == 0


class TestDecimalFees:
    """Fees with cents must add up exactly"""

    @pytest.fixture
    def cents(self):
        return QuoteSettings(group_fee=6.1, bp_park_fee=1.1, censimento=40.1, pre_camp=15.1)

    def test_total_is_rounded(self, cents):
        assert total_fixed_fees(cents) == 62.40
        assert FeeAllocations.full().allocated_total(cents) == 62.40

    def test_exact_payment_covers_everything(self, cents):
        assert resolve_allocation(62.40, cents) == FeeAllocations.full()

    def test_exact_installment(self, cents):
        inst = record_installment(Installment(), "first", 62.40, "2024-10-01", PaymentMethod.CASH, cents)
        assert inst.allocations == FeeAllocations.full()

    def test_selection_equal_to_amount(self, cents):
        """censimento + group fee = 46.20"""
        selection = FeeAllocations(censimento=True, group_fee=True)
        assert resolve_allocation(46.20, cents, selection) == selection

    def test_one_cent_short(self, cents):
        with pytest.raises(AllocationRequired):
            resolve_allocation(62.39, cents)
