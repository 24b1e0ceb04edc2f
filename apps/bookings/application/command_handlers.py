"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- CreateBookingCommand: Tenant books an apartment and pays the rent
- ApproveBookingCommand / RejectBookingCommand: Owner decides on a request
- CancelBookingCommand: Tenant cancels (80/20 refund split)
- RequestModificationCommand: Tenant changes dates or guests
- ApproveModificationCommand / RejectModificationCommand: Owner decides
- CompleteBookingCommand: Stay is over (scheduled sweep)

Queries:
- CheckConflictQuery: Is a stay free for an apartment
- QuoteRentQuery: Rent for a stay at current apartment prices

Every command runs in one unit of work. Ledger calls nest inside it, so a
failed payment rolls back the booking change and vice versa.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from apps.apartments.models import Apartment
from apps.bookings.domain.entities import BookingAction, ensure_change_window
from apps.bookings.domain.events import (
    BookingApproved,
    BookingCancelled,
    BookingCompleted,
    BookingCreated,
    BookingModificationApproved,
    BookingModificationRejected,
    BookingModificationRequested,
    BookingRejected,
)
from apps.bookings.domain.pricing import calculate_rent
from apps.bookings.models import Booking
from apps.bookings.services import AvailabilityChecker
from apps.finances.ledger import Ledger
from apps.finances.models import Transaction
from shared.application.clock import Clock, local_date, system_clock
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import (
    ConflictError,
    GuardViolationError,
    InternalError,
    LedgerFailureError,
    NotFoundError,
    ValidationFailureError,
)
from shared.domain.value_objects import Money

logger = logging.getLogger(__name__)

MIN_GUESTS = 1
MAX_GUESTS = 20
PAYMENT_METHOD_MAX_LENGTH = 50


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    The rent is charged to the tenant immediately; the booking waits for
    the owner's decision in PENDING.
    """
    tenant_id: int
    apartment_id: int
    check_in: date
    check_out: date
    payment_method: str
    number_of_guests: int | None = None


@dataclass
class ApproveBookingCommand:
    booking_id: int
    owner_id: int


@dataclass
class RejectBookingCommand:
    booking_id: int
    owner_id: int


@dataclass
class CancelBookingCommand:
    booking_id: int
    tenant_id: int


@dataclass
class RequestModificationCommand:
    """Omitted fields keep their current value"""
    booking_id: int
    tenant_id: int
    check_in: date | None = None
    check_out: date | None = None
    number_of_guests: int | None = None


@dataclass
class ApproveModificationCommand:
    booking_id: int
    owner_id: int


@dataclass
class RejectModificationCommand:
    booking_id: int
    owner_id: int


@dataclass
class CompleteBookingCommand:
    """Issued by the scheduled sweep, not by a user"""
    booking_id: int


@dataclass
class CheckConflictQuery:
    apartment_id: int
    check_in: date
    check_out: date
    exclude_booking_id: int | None = None


@dataclass
class QuoteRentQuery:
    apartment_id: int
    check_in: date
    check_out: date


# ===== Results =====

@dataclass(frozen=True)
class CreateBookingResult:
    booking_id: int
    status: str
    total_rent: Money
    check_in: date
    check_out: date
    remaining_balance: Decimal


@dataclass(frozen=True)
class StatusResult:
    booking_id: int
    status: str


@dataclass(frozen=True)
class RejectBookingResult:
    booking_id: int
    status: str
    refund_amount: Money


@dataclass(frozen=True)
class CancelBookingResult:
    booking_id: int
    status: str
    refund_amount: Money
    cancellation_fee: Money


@dataclass(frozen=True)
class ModificationResult:
    booking_id: int
    status: str
    check_in: date
    check_out: date
    number_of_guests: int | None
    total_rent: Money
    additional_payment: Money


# ===== Input validation =====

def _validate_guests(number_of_guests: int | None):
    if number_of_guests is None:
        return
    if isinstance(number_of_guests, bool) or not isinstance(number_of_guests, int):
        raise ValidationFailureError("Number of guests must be a number")
    if not MIN_GUESTS <= number_of_guests <= MAX_GUESTS:
        raise ValidationFailureError(
            f"Number of guests must be between {MIN_GUESTS} and {MAX_GUESTS}",
            number_of_guests=number_of_guests,
        )


def _validate_stay(check_in: date, check_out: date):
    if check_out <= check_in:
        raise ValidationFailureError(
            "Check-out date must be after check-in date",
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
        )


def _validate_not_in_past(check_in: date, today: date):
    if check_in < today:
        raise ValidationFailureError(
            "Check-in date must be today or in the future",
            check_in=check_in.isoformat(),
        )


# ===== Command Handlers =====

class BookingCommandHandler:
    """
    Shared plumbing for lifecycle handlers

    Dependencies are injected so tests can pin the clock and swap the
    ledger. ``moves_money`` decides how storage errors are reported:
    LedgerFailure for money-touching operations, InternalError otherwise.
    """

    moves_money = False

    def __init__(
        self,
        ledger: Ledger | None = None,
        availability: AvailabilityChecker | None = None,
        clock: Clock = system_clock,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
    ):
        self.ledger = ledger or Ledger(uow_factory=uow_factory)
        self.availability = availability or AvailabilityChecker()
        self.clock = clock
        self.uow_factory = uow_factory

    def __call__(self, command):
        return self.handle(command)

    def handle(self, command):
        raise NotImplementedError

    @contextmanager
    def storage_errors_reported(self, **context):
        """Map unexpected database errors to the generic failure for this handler"""
        try:
            yield
        except DatabaseError as e:
            logger.error(
                f"{self.__class__.__name__} failed with storage error: {e} {context}",
                exc_info=True,
            )
            error_class = LedgerFailureError if self.moves_money else InternalError
            raise error_class(**context) from e

    def _load_booking(self, booking_id: int, *, lock: bool = True) -> Booking:
        queryset = Booking.objects.select_related('apartment')
        if lock:
            queryset = queryset.select_for_update(of=('self',))
        try:
            return queryset.get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError("Booking not found", booking_id=booking_id)

    def _load_for_tenant(self, booking_id: int, tenant_id: int, *, lock: bool = True) -> Booking:
        booking = self._load_booking(booking_id, lock=lock)
        if booking.tenant_id != tenant_id:
            logger.warning(f"User {tenant_id} tried to act as tenant on booking {booking_id}")
            raise NotFoundError("Booking not found", booking_id=booking_id)
        return booking

    def _load_for_owner(self, booking_id: int, owner_id: int, *, lock: bool = True) -> Booking:
        booking = self._load_booking(booking_id, lock=lock)
        if booking.apartment.owner_id != owner_id:
            logger.warning(f"User {owner_id} tried to act as owner on booking {booking_id}")
            raise NotFoundError("Booking not found", booking_id=booking_id)
        return booking

    @staticmethod
    def _save_status(booking: Booking, *extra_fields: str):
        booking.save(update_fields=['status', 'updated_at', *extra_fields])

    def _lock_for_owner_decision(self, booking_id: int, owner_id: int, action: BookingAction) -> Booking:
        """
        Lock the apartment, then the booking, and make sure the booking's
        current dates are still free before it blocks them again

        MODIFIED_PENDING does not block dates, so another booking may have
        taken them while the owner was deciding.
        """
        current = self._load_for_owner(booking_id, owner_id, lock=False)
        self.availability.lock_apartment(current.apartment_id, require_active=False)
        booking = self._load_for_owner(booking_id, owner_id)
        booking.ensure_allowed(action)
        if self.availability.has_conflict(
            booking.apartment_id,
            booking.check_in_date,
            booking.check_out_date,
            exclude_booking_id=booking.pk,
        ):
            raise ConflictError(
                booking_id=booking.pk,
                check_in=booking.check_in_date.isoformat(),
                check_out=booking.check_out_date.isoformat(),
            )
        return booking


class CreateBookingHandler(BookingCommandHandler):
    """
    Handler for CreateBooking command

    Double booking prevention:
    1. Start database transaction (atomic)
    2. Lock the apartment row (SELECT FOR UPDATE), serialising creations per apartment
    3. Check for overlapping blocking bookings
    4. Compute rent from current apartment prices
    5. Insert the PENDING booking and charge the tenant in the same transaction
    6. Commit, then publish BookingCreated
    """

    moves_money = True

    def handle(self, command: CreateBookingCommand) -> CreateBookingResult:
        logger.info(
            f"Creating booking for apartment {command.apartment_id}, "
            f"tenant {command.tenant_id}, dates {command.check_in} - {command.check_out}"
        )

        _validate_stay(command.check_in, command.check_out)
        _validate_not_in_past(command.check_in, local_date(self.clock()))
        _validate_guests(command.number_of_guests)
        payment_method = (command.payment_method or '').strip()
        if not payment_method:
            raise ValidationFailureError("Payment method is required")
        if len(payment_method) > PAYMENT_METHOD_MAX_LENGTH:
            raise ValidationFailureError(
                f"Payment method cannot exceed {PAYMENT_METHOD_MAX_LENGTH} characters"
            )

        with self.storage_errors_reported(
            tenant_id=command.tenant_id, apartment_id=command.apartment_id
        ):
            with self.uow_factory() as uow:
                apartment = self.availability.lock_apartment(command.apartment_id)
                if apartment.owner_id == command.tenant_id:
                    raise ValidationFailureError(
                        "Owners cannot book their own apartment",
                        apartment_id=apartment.pk,
                    )

                if self.availability.has_conflict(
                    apartment.pk, command.check_in, command.check_out
                ):
                    raise ConflictError(
                        apartment_id=apartment.pk,
                        check_in=command.check_in.isoformat(),
                        check_out=command.check_out.isoformat(),
                    )

                rent = calculate_rent(
                    apartment.nightly_price,
                    apartment.monthly_price,
                    command.check_in,
                    command.check_out,
                )

                booking = Booking.objects.create(
                    tenant_id=command.tenant_id,
                    apartment=apartment,
                    check_in_date=command.check_in,
                    check_out_date=command.check_out,
                    number_of_guests=command.number_of_guests,
                    payment_method=payment_method,
                    total_rent=rent.amount,
                    status=Booking.Status.PENDING,
                )

                if rent.is_positive():
                    self.ledger.transfer(
                        command.tenant_id,
                        apartment.owner_id,
                        rent,
                        booking_id=booking.pk,
                        kind=Transaction.Type.RENT_PAYMENT,
                        payer_description=f"Rent payment for booking #{booking.pk}",
                        payee_description=f"Rent received for booking #{booking.pk}",
                    )

                booking.record_event(BookingCreated(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=apartment.pk,
                    tenant_id=command.tenant_id,
                    owner_id=apartment.owner_id,
                    check_in=command.check_in,
                    check_out=command.check_out,
                    total_rent=rent,
                ))
                uow.collect_events(booking)

                remaining_balance = (
                    get_user_model().objects.values_list('balance', flat=True)
                    .get(pk=command.tenant_id)
                )

        logger.info(f"Booking {booking.pk} created with rent {rent}")

        return CreateBookingResult(
            booking_id=booking.pk,
            status=booking.status,
            total_rent=rent,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
            remaining_balance=remaining_balance,
        )


class ApproveBookingHandler(BookingCommandHandler):
    """Owner accepts a pending request; money already moved at creation"""

    def handle(self, command: ApproveBookingCommand) -> StatusResult:
        logger.info(f"Owner {command.owner_id} approving booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._load_for_owner(command.booking_id, command.owner_id)
                booking.apply(BookingAction.APPROVE)
                self._save_status(booking)

                booking.record_event(BookingApproved(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} approved")
        return StatusResult(booking_id=booking.pk, status=booking.status)


class RejectBookingHandler(BookingCommandHandler):
    """Owner declines a pending request and refunds 100% of the rent"""

    moves_money = True

    def handle(self, command: RejectBookingCommand) -> RejectBookingResult:
        logger.info(f"Owner {command.owner_id} rejecting booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._load_for_owner(command.booking_id, command.owner_id)
                booking.apply(BookingAction.REJECT)

                refund = booking.rent
                if refund.is_positive():
                    self.ledger.transfer(
                        command.owner_id,
                        booking.tenant_id,
                        refund,
                        booking_id=booking.pk,
                        kind=Transaction.Type.REFUND,
                        payer_description=f"Full refund for rejected booking #{booking.pk}",
                        payee_description=f"Full refund for rejected booking #{booking.pk}",
                    )
                self._save_status(booking)

                booking.record_event(BookingRejected(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                    refund_amount=refund,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} rejected, refunded {refund}")
        return RejectBookingResult(
            booking_id=booking.pk, status=booking.status, refund_amount=refund
        )


class CancelBookingHandler(BookingCommandHandler):
    """Tenant cancels at least 24 hours ahead; 80% refunded, 20% kept as fee"""

    moves_money = True

    def handle(self, command: CancelBookingCommand) -> CancelBookingResult:
        logger.info(f"Tenant {command.tenant_id} cancelling booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._load_for_tenant(command.booking_id, command.tenant_id)
                old_status = booking.status
                booking.ensure_allowed(BookingAction.CANCEL)
                ensure_change_window(booking.check_in_date, self.clock(), BookingAction.CANCEL)

                refund = fee = Money.zero()
                if booking.rent.is_positive():
                    receipt = self.ledger.split_refund(
                        booking.apartment.owner_id,
                        booking.tenant_id,
                        booking.rent,
                        booking_id=booking.pk,
                    )
                    refund, fee = receipt.refund, receipt.fee

                booking.apply(BookingAction.CANCEL)
                self._save_status(booking)

                booking.record_event(BookingCancelled(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                    owner_id=booking.apartment.owner_id,
                    old_status=old_status,
                    refund_amount=refund,
                    cancellation_fee=fee,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} cancelled: refund {refund}, fee {fee}")
        return CancelBookingResult(
            booking_id=booking.pk,
            status=booking.status,
            refund_amount=refund,
            cancellation_fee=fee,
        )


class RequestModificationHandler(BookingCommandHandler):
    """
    Tenant changes dates and/or guests of an approved booking

    The new values apply immediately and wait for the owner in
    MODIFIED_PENDING. A higher rent is charged first; a lower rent is not
    refunded here. The pre-modification values are kept in ``previous_*``.
    """

    moves_money = True

    def handle(self, command: RequestModificationCommand) -> ModificationResult:
        logger.info(f"Tenant {command.tenant_id} requesting modification of booking {command.booking_id}")

        if command.check_in is None and command.check_out is None and command.number_of_guests is None:
            raise GuardViolationError(
                "Please make changes before submitting modification request",
                booking_id=command.booking_id,
            )
        today = local_date(self.clock())
        if command.check_in is not None:
            _validate_not_in_past(command.check_in, today)
        _validate_guests(command.number_of_guests)

        with self.storage_errors_reported(booking_id=command.booking_id):
            # Lock order matches creation: apartment first, then booking rows
            current = self._load_for_tenant(command.booking_id, command.tenant_id, lock=False)
            with self.uow_factory() as uow:
                self.availability.lock_apartment(current.apartment_id, require_active=False)
                booking = self._load_for_tenant(command.booking_id, command.tenant_id)
                booking.ensure_allowed(BookingAction.REQUEST_MODIFICATION)
                ensure_change_window(
                    booking.check_in_date, self.clock(), BookingAction.REQUEST_MODIFICATION
                )

                new_check_in = command.check_in or booking.check_in_date
                new_check_out = command.check_out or booking.check_out_date
                new_guests = (
                    command.number_of_guests
                    if command.number_of_guests is not None
                    else booking.number_of_guests
                )
                dates_changed = (
                    new_check_in != booking.check_in_date
                    or new_check_out != booking.check_out_date
                )
                if not dates_changed and new_guests == booking.number_of_guests:
                    raise GuardViolationError(
                        "Please make changes before submitting modification request",
                        booking_id=booking.pk,
                    )
                _validate_stay(new_check_in, new_check_out)

                if dates_changed and self.availability.has_conflict(
                    booking.apartment_id,
                    new_check_in,
                    new_check_out,
                    exclude_booking_id=booking.pk,
                ):
                    raise ConflictError(
                        booking_id=booking.pk,
                        check_in=new_check_in.isoformat(),
                        check_out=new_check_out.isoformat(),
                    )

                old_rent = booking.rent
                new_rent = old_rent
                if dates_changed:
                    new_rent = calculate_rent(
                        booking.apartment.nightly_price,
                        booking.apartment.monthly_price,
                        new_check_in,
                        new_check_out,
                    )

                additional_payment = Money.zero()
                if new_rent > old_rent:
                    additional_payment = new_rent - old_rent
                    self.ledger.transfer(
                        booking.tenant_id,
                        booking.apartment.owner_id,
                        additional_payment,
                        booking_id=booking.pk,
                        kind=Transaction.Type.RENT_PAYMENT,
                        payer_description=f"Additional rent for modified booking #{booking.pk}",
                        payee_description=f"Additional rent for modified booking #{booking.pk}",
                    )
                elif new_rent < old_rent:
                    logger.info(
                        f"Booking {booking.pk} rent decreased by {old_rent - new_rent}; "
                        f"no refund issued on modification request"
                    )

                booking.snapshot_for_modification()
                booking.check_in_date = new_check_in
                booking.check_out_date = new_check_out
                booking.number_of_guests = new_guests
                booking.total_rent = new_rent.amount
                booking.apply(BookingAction.REQUEST_MODIFICATION)
                self._save_status(
                    booking,
                    'check_in_date',
                    'check_out_date',
                    'number_of_guests',
                    'total_rent',
                    'previous_check_in_date',
                    'previous_check_out_date',
                    'previous_number_of_guests',
                    'previous_total_rent',
                )

                booking.record_event(BookingModificationRequested(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                    owner_id=booking.apartment.owner_id,
                    check_in=new_check_in,
                    check_out=new_check_out,
                    total_rent=new_rent,
                    additional_payment=additional_payment,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} modification requested, rent {old_rent} -> {new_rent}")
        return ModificationResult(
            booking_id=booking.pk,
            status=booking.status,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
            number_of_guests=booking.number_of_guests,
            total_rent=new_rent,
            additional_payment=additional_payment,
        )


class ApproveModificationHandler(BookingCommandHandler):
    def handle(self, command: ApproveModificationCommand) -> StatusResult:
        logger.info(f"Owner {command.owner_id} approving modification of booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._lock_for_owner_decision(
                    command.booking_id, command.owner_id, BookingAction.APPROVE_MODIFICATION
                )
                booking.apply(BookingAction.APPROVE_MODIFICATION)
                self._save_status(booking)

                booking.record_event(BookingModificationApproved(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} modification approved")
        return StatusResult(booking_id=booking.pk, status=booking.status)


class RejectModificationHandler(BookingCommandHandler):
    """
    Owner declines a modification; the booking goes back to APPROVED

    Dates and rent are left as requested. The previous values stay in the
    ``previous_*`` fields for a later manual correction. APPROVED blocks
    dates again, so the requested dates must still be free.
    """

    def handle(self, command: RejectModificationCommand) -> StatusResult:
        logger.info(f"Owner {command.owner_id} rejecting modification of booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._lock_for_owner_decision(
                    command.booking_id, command.owner_id, BookingAction.REJECT_MODIFICATION
                )
                booking.apply(BookingAction.REJECT_MODIFICATION)
                self._save_status(booking)

                booking.record_event(BookingModificationRejected(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                ))
                uow.collect_events(booking)

        logger.warning(
            f"Booking {booking.pk} modification rejected; requested values kept "
            f"(previous check-in {booking.previous_check_in_date}, "
            f"previous rent {booking.previous_total_rent})"
        )
        return StatusResult(booking_id=booking.pk, status=booking.status)


class CompleteBookingHandler(BookingCommandHandler):
    """Handler for completing a booking once check-out has passed"""

    def handle(self, command: CompleteBookingCommand) -> StatusResult:
        logger.info(f"Completing booking {command.booking_id}")

        with self.storage_errors_reported(booking_id=command.booking_id):
            with self.uow_factory() as uow:
                booking = self._load_booking(command.booking_id)
                booking.ensure_allowed(BookingAction.COMPLETE)
                today = local_date(self.clock())
                if booking.check_out_date > today:
                    raise GuardViolationError(
                        "Booking cannot be completed before check-out",
                        booking_id=booking.pk,
                        check_out=booking.check_out_date.isoformat(),
                    )
                booking.apply(BookingAction.COMPLETE)
                self._save_status(booking)

                booking.record_event(BookingCompleted(
                    aggregate_id=booking.pk,
                    booking_id=booking.pk,
                    apartment_id=booking.apartment_id,
                    tenant_id=booking.tenant_id,
                ))
                uow.collect_events(booking)

        logger.info(f"Booking {booking.pk} completed")
        return StatusResult(booking_id=booking.pk, status=booking.status)


# ===== Query Handlers =====

class CheckConflictHandler(BookingCommandHandler):
    def handle(self, query: CheckConflictQuery) -> bool:
        _validate_stay(query.check_in, query.check_out)
        return self.availability.has_conflict(
            query.apartment_id,
            query.check_in,
            query.check_out,
            exclude_booking_id=query.exclude_booking_id,
        )


class QuoteRentHandler(BookingCommandHandler):
    def handle(self, query: QuoteRentQuery) -> Money:
        _validate_stay(query.check_in, query.check_out)
        try:
            apartment = Apartment.objects.get(pk=query.apartment_id)
        except Apartment.DoesNotExist:
            raise NotFoundError("Apartment not found", apartment_id=query.apartment_id)
        return calculate_rent(
            apartment.nightly_price,
            apartment.monthly_price,
            query.check_in,
            query.check_out,
        )
