"""
Payment status state machine.

    pending -> matched -> confirmed
    pending | matched -> rejected
    pending | matched -> expired

confirmed, rejected and expired are terminal. The functions here only decide
whether a transition is legal; the store applies it with an update guarded by
the status that was read, so two concurrent confirms cannot both win.
"""
from typing import Dict, FrozenSet

from jambi.core.exceptions import AlreadyConfirmed, AlreadyRejected, InvalidTransition
from jambi.models.payment_model import PaymentStatus

OPEN_STATUSES: FrozenSet[PaymentStatus] = frozenset({PaymentStatus.pending, PaymentStatus.matched})
TERMINAL_STATUSES: FrozenSet[PaymentStatus] = frozenset(
    {PaymentStatus.confirmed, PaymentStatus.rejected, PaymentStatus.expired}
)

TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.pending: frozenset(
        {PaymentStatus.matched, PaymentStatus.confirmed, PaymentStatus.rejected, PaymentStatus.expired}
    ),
    PaymentStatus.matched: frozenset(
        {PaymentStatus.confirmed, PaymentStatus.rejected, PaymentStatus.expired}
    ),
    **{status: frozenset() for status in TERMINAL_STATUSES},
}


def _with_article(status: PaymentStatus) -> str:
    article = "an" if status.value[0] in "aeiou" else "a"
    return f"{article} {status.value}"


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in TRANSITIONS[PaymentStatus(current)]


def ensure_can_confirm(current: PaymentStatus) -> None:
    current = PaymentStatus(current)
    if current == PaymentStatus.confirmed:
        raise AlreadyConfirmed()
    if not can_transition(current, PaymentStatus.confirmed):
        raise InvalidTransition(f"Cannot confirm {_with_article(current)} payment")


def ensure_can_reject(current: PaymentStatus) -> None:
    current = PaymentStatus(current)
    if current == PaymentStatus.rejected:
        raise AlreadyRejected()
    if not can_transition(current, PaymentStatus.rejected):
        raise InvalidTransition(f"Cannot reject {_with_article(current)} payment")
