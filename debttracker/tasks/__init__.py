"""Background tasks for the debt tracker."""

from debttracker.tasks.debt_reminders import (
    DebtReminderWorker,
    ReminderRegistry,
)

__all__ = [
    "DebtReminderWorker",
    "ReminderRegistry",
]
