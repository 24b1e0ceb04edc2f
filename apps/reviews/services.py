"""Rating submission for completed bookings."""

from __future__ import annotations

import logging
from typing import Callable

from django.db import DatabaseError, IntegrityError  # type: ignore

from apps.bookings.domain.entities import BookingStatus
from apps.bookings.models import Booking
from shared.application.clock import Clock, local_date, system_clock
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import (
    GuardViolationError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    ValidationFailureError,
)

from .events import RatingSubmitted
from .models import MAX_RATING, MIN_RATING, REVIEW_TEXT_MAX_LENGTH, Rating

logger = logging.getLogger(__name__)


def submit_rating(
    booking_id: int,
    tenant_id: int,
    rating: int,
    review_text: str = "",
    *,
    clock: Clock = system_clock,
    uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
) -> Rating:
    """Rate a completed, checked-out booking once.

    Raises:
        ValidationFailureError: rating outside 1..5 or review text too long
        NotFoundError: booking missing or not the tenant's
        InvalidStateError: booking is not completed
        GuardViolationError: check-out not reached yet, or already rated
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationFailureError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}", rating=rating
        )
    review_text = review_text or ""
    if len(review_text) > REVIEW_TEXT_MAX_LENGTH:
        raise ValidationFailureError(
            f"Review text cannot exceed {REVIEW_TEXT_MAX_LENGTH} characters"
        )

    logger.info(f"Tenant {tenant_id} rating booking {booking_id} with {rating}")

    try:
        with uow_factory() as uow:
            try:
                booking = Booking.objects.select_for_update().get(pk=booking_id)
            except Booking.DoesNotExist:
                raise NotFoundError("Booking not found", booking_id=booking_id)
            if booking.tenant_id != tenant_id:
                raise NotFoundError("Booking not found", booking_id=booking_id)

            if booking.lifecycle_status != BookingStatus.COMPLETED:
                raise InvalidStateError(
                    "Only completed bookings can be rated",
                    booking_id=booking_id,
                    status=booking.status,
                )
            if booking.check_out_date > local_date(clock()):
                raise GuardViolationError(
                    "Booking can be rated after check-out", booking_id=booking_id
                )
            if Rating.objects.filter(booking_id=booking_id).exists():
                raise GuardViolationError(
                    "You have already rated this booking", booking_id=booking_id
                )

            obj = Rating.objects.create(
                booking=booking,
                apartment_id=booking.apartment_id,
                tenant_id=tenant_id,
                rating=rating,
                review_text=review_text,
            )
            obj.record_event(RatingSubmitted(
                aggregate_id=obj.pk,
                rating_id=obj.pk,
                booking_id=booking_id,
                apartment_id=booking.apartment_id,
                tenant_id=tenant_id,
                rating=rating,
            ))
            uow.collect_events(obj)
    except IntegrityError:
        # Lost a race with a concurrent submission for the same booking
        raise GuardViolationError("You have already rated this booking", booking_id=booking_id)
    except DatabaseError as e:
        logger.error(f"Rating booking {booking_id} failed: {e}", exc_info=True)
        raise InternalError(booking_id=booking_id) from e

    logger.info(f"Rating {obj.pk} submitted for booking {booking_id}")
    return obj
