"""Exception types raised by the debt tracking core."""


class DebtTrackerError(Exception):
    """Base class for all debt tracker errors."""


class StoreError(DebtTrackerError):
    """Debt or user persistence failed (backend read or write error)."""


class UserLookupError(DebtTrackerError):
    """A user could not be resolved from the user directory."""

    def __init__(self, user_id: str, reason: str = "user not found") -> None:
        self.user_id = user_id
        self.reason = reason
        super().__init__(f"Cannot resolve user {user_id!r}: {reason}")


class MultipleLendersError(DebtTrackerError):
    """An order already has debts owed to a different lender."""

    def __init__(self, order_id: str, existing_lender: str, lender: str) -> None:
        self.order_id = order_id
        self.existing_lender = existing_lender
        self.lender = lender
        super().__init__(
            f"Order {order_id} is already hosted by {existing_lender!r}, "
            f"cannot add debts owed to {lender!r}"
        )


class DuplicateDebtError(DebtTrackerError):
    """The borrower already owes a debt for this order."""

    def __init__(self, order_id: str, borrower_id: str) -> None:
        self.order_id = order_id
        self.borrower_id = borrower_id
        super().__init__(
            f"User {borrower_id!r} already has an active debt for order {order_id}"
        )


class OrderIdExtractionError(DebtTrackerError):
    """The order id pattern could not be applied to a message."""
