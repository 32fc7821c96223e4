"""Chat message templates and order id extraction.

Every message that refers to an order contains the order id marker
(``order ID <ID>``) so that reactions added to it can be traced back to
the order.
"""

import re
from dataclasses import dataclass
from typing import Optional

from debttracker.models.common import MatchOutcome


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

MESSAGE_TEMPLATES = {
    "TRACKING_STARTED": (
        "I'll keep reminding you to pay, when you pay you can react with "
        ":{paid_reaction}: to the rates message and I'll stop bothering you.\n"
        "<@{lender}>, as the host, you can react with :{cancel_reaction}: to the "
        "rates message to cancel debts tracking for order ID {order_id}"
    ),
    "HOST_NOT_FOUND": (
        "I didn't find the user of the host ({lender_id}), "
        "I won't track debts for order ID {order_id}"
    ),
    "BORROWER_NOT_FOUND": (
        "I won't track {user_id}'s payment because I can't find their user."
    ),
    "REMINDER": (
        "Reminder, you should pay {amount} {currency} to <@{lender}> for order ID {order_id}.\n"
        "If you paid, you can mark yourself as paid by adding :{paid_reaction}: "
        "reaction to this message or to the original rates message."
    ),
    "DEBT_REMOVED": "OK! I removed your debt for order ID {order_id}",
    "MARKED_PAID": "<@{borrower}> marked themselves as paid for order ID {order_id}",
    "HOST_ONLY": (
        "Nice try :stuck_out_tongue_winking_eye: Only the host (<@{host}>) "
        "can cancel debts for order ID {order_id}"
    ),
    "ORDER_CANCELLED": "I removed all debts for order ID {order_id} because {reason}",
}


def format_message(template_key: str, **kwargs: object) -> str:
    """Render a chat message from a named template.

    Raises:
        KeyError: If template_key is not found or required kwargs are missing.
    """
    template = MESSAGE_TEMPLATES[template_key]
    return template.format(**kwargs)


# ---------------------------------------------------------------------------
# Order id extraction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderIdMatch:
    """Tagged result of searching a message for an order id."""
    outcome: MatchOutcome
    order_id: Optional[str] = None
    detail: str = ""


def extract_order_id(text: Optional[str], pattern: re.Pattern) -> OrderIdMatch:
    """Find the order id a message refers to.

    Messages without text, or whose text carries no order id, are a
    ``NO_MATCH``. A pattern without an ``id`` group, or a match with an
    empty id, is ``MALFORMED``.
    """
    if "id" not in pattern.groupindex:
        return OrderIdMatch(
            MatchOutcome.MALFORMED, detail=f"pattern {pattern.pattern!r} has no 'id' group"
        )
    if not text:
        return OrderIdMatch(MatchOutcome.NO_MATCH)

    match = pattern.search(text)
    if match is None:
        return OrderIdMatch(MatchOutcome.NO_MATCH)

    order_id = match.group("id")
    if not order_id:
        return OrderIdMatch(
            MatchOutcome.MALFORMED, detail=f"empty order id in {text!r}"
        )
    return OrderIdMatch(MatchOutcome.MATCHED, order_id=order_id)
