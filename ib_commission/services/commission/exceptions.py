"""
Commission engine exceptions.

Expected business outcomes (feature disabled, already processed, empty
upline) are returned as result objects, not raised. These exceptions cover
integrity violations and caller errors.
"""


class CommissionError(Exception):
    """Base class for commission engine errors."""


class CommissionIntegrityError(CommissionError):
    """Data violates an engine invariant; the operation must abort."""


class UplineCycleError(CommissionIntegrityError):
    """A user id appeared twice while walking the referral chain."""

    def __init__(self, user_id: int, repeated_id: int) -> None:
        super().__init__(
            f"Referral cycle detected resolving upline of user {user_id}: "
            f"user {repeated_id} repeats"
        )
        self.user_id = user_id
        self.repeated_id = repeated_id


class InvalidVolumeError(CommissionIntegrityError):
    """Trade volume is negative or not a finite number."""


class StalePeriodError(CommissionError):
    """Volume arrived for a period that was already processed."""

    def __init__(self, user_id: int, period_key: str) -> None:
        super().__init__(
            f"Period {period_key} of user {user_id} is no longer accumulating"
        )
        self.user_id = user_id
        self.period_key = period_key


class InvalidPeriodError(CommissionError, ValueError):
    """Period key is not in "YYYY-MM" form."""


class InvalidAmountError(CommissionError, ValueError):
    """Wallet mutation amount is not strictly positive."""


class WalletNotFoundError(CommissionError):
    """No IB account exists for the beneficiary."""

    def __init__(self, user_id: int) -> None:
        super().__init__(f"IB wallet not found for user {user_id}")
        self.user_id = user_id


class CommissionNotFoundError(CommissionError):
    """Ledger entry does not exist."""

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Commission entry {entry_id} not found")
        self.entry_id = entry_id


class CommissionAlreadyReversedError(CommissionError):
    """Ledger entry is already REVERSED."""

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Commission entry {entry_id} is already reversed")
        self.entry_id = entry_id
