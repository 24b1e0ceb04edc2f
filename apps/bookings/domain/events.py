"""
Booking Domain Events

Events that represent things that have happened in the booking domain.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import date

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A tenant created a booking and paid the rent

    Triggers:
    - Notify the apartment owner about a new request
    - Confirm the request to the tenant
    """
    booking_id: int
    apartment_id: int
    tenant_id: int
    owner_id: int
    check_in: date
    check_out: date
    total_rent: Money


@dataclass
class BookingApproved(DomainEvent):
    """Event: Owner approved a pending booking (PENDING -> APPROVED)"""
    booking_id: int
    apartment_id: int
    tenant_id: int


@dataclass
class BookingRejected(DomainEvent):
    """
    Event: Owner rejected a pending booking (PENDING -> REJECTED)

    The full rent was refunded to the tenant.
    """
    booking_id: int
    apartment_id: int
    tenant_id: int
    refund_amount: Money


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Tenant cancelled a booking

    Triggers:
    - Notify the owner that the dates are free again
    """
    booking_id: int
    apartment_id: int
    tenant_id: int
    owner_id: int
    old_status: str
    refund_amount: Money
    cancellation_fee: Money


@dataclass
class BookingModificationRequested(DomainEvent):
    """Event: Tenant asked to change dates or guests (-> MODIFIED_PENDING)"""
    booking_id: int
    apartment_id: int
    tenant_id: int
    owner_id: int
    check_in: date
    check_out: date
    total_rent: Money
    additional_payment: Money


@dataclass
class BookingModificationApproved(DomainEvent):
    """Event: Owner accepted the modification (MODIFIED_PENDING -> MODIFIED_APPROVED)"""
    booking_id: int
    apartment_id: int
    tenant_id: int


@dataclass
class BookingModificationRejected(DomainEvent):
    """Event: Owner declined the modification (MODIFIED_PENDING -> APPROVED)"""
    booking_id: int
    apartment_id: int
    tenant_id: int


@dataclass
class BookingCompleted(DomainEvent):
    """
    Event: Stay is over (-> COMPLETED)

    Triggers:
    - Ask the tenant for a rating
    """
    booking_id: int
    apartment_id: int
    tenant_id: int
