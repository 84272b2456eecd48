"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input is malformed or missing required fields"""

    pass


class NotFoundError(DomainException):
    """Referenced record does not exist or is soft-deleted"""

    pass


class ConsistencyError(DomainException):
    """Operation would violate a lifecycle or ownership rule"""

    pass


class IncomePromotionError(ConsistencyError):
    """Only expense forecast entries can move into a payment plan"""

    pass


class ContractDeletedError(ConsistencyError):
    """Lifecycle operation attempted on a deleted contract"""

    pass


class InstallmentAlreadyPaidError(ConsistencyError):
    pass


class InstallmentNotPaidError(ConsistencyError):
    pass


class SplitAlreadyExistsError(ConsistencyError):
    """A receipt can only be split once"""

    pass


class SynchronizationError(DomainException):
    """Forecast ledger could not be brought in line with its contract"""

    pass


class TransactionFeedError(DomainException):
    """Transaction feed returned an error or is unavailable"""

    pass
