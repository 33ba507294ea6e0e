"""
Exception types for ScoutLedger
"""
from __future__ import annotations


class LedgerValidationError(Exception):
    """A user operation was rejected; the ledger state is unchanged"""
    pass


class AllocationError(LedgerValidationError):
    """Selected fee buckets exceed the amount paid"""
    pass


class AllocationRequired(AllocationError):
    """A partial first-installment payment needs an explicit bucket selection"""

    def __init__(self, paid_amount: float, total_fixed_fees: float):
        super().__init__(
            f"Payment of {paid_amount:.2f} does not cover the fixed fees "
            f"({total_fixed_fees:.2f}); select which fees it covers."
        )
        self.paid_amount = paid_amount
        self.total_fixed_fees = total_fixed_fees


class BackupError(Exception):
    """Backup file is not usable"""
    pass


class StorageError(Exception):
    """Reading or writing the ledger file failed"""
    pass

