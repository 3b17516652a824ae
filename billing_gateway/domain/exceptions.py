"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class PaymentValidationError(DomainException):
    """Submitted amount is not an allowed payment amount"""

    pass


class OrderNotPayableError(DomainException):
    """Order cannot take payments yet (no shipping fee) or has nothing due"""

    pass


class OrderNotFoundError(DomainException):
    pass


class PaymentNotFoundError(DomainException):
    pass


class InvalidTransitionError(DomainException):
    """Requested status change is not part of the payment lifecycle"""

    pass


class PaymentAlreadyProcessedError(DomainException):
    """Conditional update matched zero rows; another reviewer got there first"""

    def __init__(self, payment_id: str, current_status: str):
        super().__init__(f"Payment {payment_id} already processed (status: {current_status})")
        self.payment_id = payment_id
        self.current_status = current_status


class StorageUnavailableError(DomainException):
    """Backing store failed or timed out; callers must re-fetch, not replay"""

    pass


class NotificationError(DomainException):
    """Notification service rejected or never acknowledged an event"""

    pass
