"""
Booking Domain Entities

Core business rules for the booking lifecycle:
- BookingStatus: FSM states for the booking lifecycle
- BookingAction: events that move a booking between states
- transition(): the transition table, the only way to change status
- Change window and action flags (can_cancel, can_modify, can_rate)
"""

from datetime import date, datetime, timedelta
from enum import Enum

from shared.application.clock import time_until
from shared.domain.errors import GuardViolationError, InvalidStateError


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING -> APPROVED (owner approves)
    - PENDING -> REJECTED (owner rejects, 100% refund)
    - PENDING/APPROVED/MODIFIED_APPROVED -> CANCELLED (tenant cancels, 80/20 split)
    - APPROVED/MODIFIED_APPROVED -> MODIFIED_PENDING (tenant requests modification)
    - MODIFIED_PENDING -> MODIFIED_APPROVED (owner approves modification)
    - MODIFIED_PENDING -> APPROVED (owner rejects modification)
    - APPROVED/MODIFIED_APPROVED -> COMPLETED (check-out passed, scheduled sweep)
    """
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'
    MODIFIED_PENDING = 'modified_pending'
    MODIFIED_APPROVED = 'modified_approved'
    MODIFIED_REJECTED = 'modified_rejected'
    COMPLETED = 'completed'

    @property
    def blocks_dates(self) -> bool:
        return self in BLOCKING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class BookingAction(Enum):
    """Things that can happen to a booking"""
    APPROVE = 'approve'
    REJECT = 'reject'
    CANCEL = 'cancel'
    REQUEST_MODIFICATION = 'request_modification'
    APPROVE_MODIFICATION = 'approve_modification'
    REJECT_MODIFICATION = 'reject_modification'
    COMPLETE = 'complete'


# Statuses that count toward availability conflicts
BLOCKING_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.MODIFIED_APPROVED,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED,
    BookingStatus.MODIFIED_REJECTED,
    BookingStatus.COMPLETED,
})

CANCELLABLE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.APPROVED,
    BookingStatus.MODIFIED_APPROVED,
})

MODIFIABLE_STATUSES = frozenset({
    BookingStatus.APPROVED,
    BookingStatus.MODIFIED_APPROVED,
})

TRANSITIONS: dict[BookingStatus, dict[BookingAction, BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingAction.APPROVE: BookingStatus.APPROVED,
        BookingAction.REJECT: BookingStatus.REJECTED,
        BookingAction.CANCEL: BookingStatus.CANCELLED,
    },
    BookingStatus.APPROVED: {
        BookingAction.CANCEL: BookingStatus.CANCELLED,
        BookingAction.REQUEST_MODIFICATION: BookingStatus.MODIFIED_PENDING,
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
    },
    BookingStatus.MODIFIED_APPROVED: {
        BookingAction.CANCEL: BookingStatus.CANCELLED,
        BookingAction.REQUEST_MODIFICATION: BookingStatus.MODIFIED_PENDING,
        BookingAction.COMPLETE: BookingStatus.COMPLETED,
    },
    BookingStatus.MODIFIED_PENDING: {
        BookingAction.APPROVE_MODIFICATION: BookingStatus.MODIFIED_APPROVED,
        BookingAction.REJECT_MODIFICATION: BookingStatus.APPROVED,
    },
}

# Cancel and modify must happen at least this long before check-in day starts
CHANGE_WINDOW = timedelta(hours=24)


def transition(current: BookingStatus, action: BookingAction) -> BookingStatus:
    """
    Resolve the next status

    Raises:
        InvalidStateError: action is not allowed from ``current``
    """
    target = TRANSITIONS.get(current, {}).get(action)
    if target is None:
        raise InvalidStateError(
            f"Cannot {action.value.replace('_', ' ')} a booking with status {current.value}",
            status=current.value,
            action=action.value,
        )
    return target


def is_within_change_window(check_in: date, now: datetime) -> bool:
    """True when check-in midnight is at least 24 hours away (inclusive)"""
    return time_until(check_in, now) >= CHANGE_WINDOW


def ensure_change_window(check_in: date, now: datetime, action: BookingAction):
    if not is_within_change_window(check_in, now):
        raise GuardViolationError(
            f"{action.value.replace('_', ' ').capitalize()} is only allowed "
            f"at least 24 hours before check-in",
            check_in=check_in.isoformat(),
        )


def can_cancel(status: BookingStatus, check_in: date, now: datetime) -> bool:
    return status in CANCELLABLE_STATUSES and is_within_change_window(check_in, now)


def can_modify(status: BookingStatus, check_in: date, now: datetime) -> bool:
    return status in MODIFIABLE_STATUSES and is_within_change_window(check_in, now)


def can_rate(status: BookingStatus, check_out: date, today: date, has_rating: bool) -> bool:
    """Completed, checked out, and not yet reviewed"""
    return status == BookingStatus.COMPLETED and check_out <= today and not has_rating
