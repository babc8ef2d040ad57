"""
Marketplace error taxonomy.

Services raise these inside atomic units so the unit rolls back, and
convert them to ServiceResult failures at their public boundary.
"""

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = 'NotFound'
    INVALID_STATE = 'InvalidState'
    INSUFFICIENT_FUNDS = 'InsufficientFunds'
    INVALID_AMOUNT = 'InvalidAmount'
    PRODUCT_NO_LONGER_AVAILABLE = 'ProductNoLongerAvailable'
    VALIDATION_ERROR = 'ValidationError'
    TRANSITION_FAILED = 'TransitionFailed'

    def __str__(self):
        return self.value


DEFAULT_MESSAGES = {
    ErrorKind.NOT_FOUND: 'The requested record could not be found.',
    ErrorKind.INVALID_STATE: 'This order has already been actioned.',
    ErrorKind.INSUFFICIENT_FUNDS: 'Insufficient balance, please fund your wallet.',
    ErrorKind.INVALID_AMOUNT: 'Amount must be greater than zero.',
    ErrorKind.PRODUCT_NO_LONGER_AVAILABLE: 'One or more items in this order are no longer available.',
    ErrorKind.VALIDATION_ERROR: 'The request is not valid.',
    ErrorKind.TRANSITION_FAILED: 'Something went wrong, please try again.',
}


class MarketplaceError(Exception):
    """Base class for every typed failure the services report"""

    kind = ErrorKind.TRANSITION_FAILED

    def __init__(self, message=None, **details):
        self.message = message or DEFAULT_MESSAGES[self.kind]
        self.details = details
        super().__init__(self.message)


class NotFoundError(MarketplaceError):
    kind = ErrorKind.NOT_FOUND


class InvalidStateError(MarketplaceError):
    kind = ErrorKind.INVALID_STATE


class InsufficientFundsError(MarketplaceError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class InvalidAmountError(MarketplaceError):
    kind = ErrorKind.INVALID_AMOUNT


class ProductNoLongerAvailableError(MarketplaceError):
    kind = ErrorKind.PRODUCT_NO_LONGER_AVAILABLE


class WriteConflict(Exception):
    """A conditional write matched no rows because another writer got there first"""
    pass
