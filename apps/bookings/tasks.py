"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.application.clock import local_date, system_clock
from shared.application.message_bus import message_bus
from shared.domain.errors import DomainError

from .application.command_handlers import CompleteBookingCommand
from .models import Booking

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.complete_finished_bookings")
def complete_finished_bookings() -> dict[str, int]:
    """
    Complete approved stays whose check-out date has passed.

    Each booking is completed in its own unit of work, so one failure does
    not block the rest of the sweep.

    Runs every hour.

    Returns:
        dict: {"completed": ..., "failed": ...}
    """
    today = local_date(system_clock())
    completed_count = 0
    failed_count = 0

    booking_ids = list(
        Booking.objects.filter(
            status__in=[Booking.Status.APPROVED, Booking.Status.MODIFIED_APPROVED],
            check_out_date__lte=today,
        )
        .order_by("check_out_date", "pk")
        .values_list("pk", flat=True)
    )

    for booking_id in booking_ids:
        try:
            message_bus.handle_command(CompleteBookingCommand(booking_id=booking_id))
            completed_count += 1
        except DomainError as e:
            failed_count += 1
            logger.warning(f"Booking {booking_id} was not completed: {e}")

    if completed_count > 0:
        logger.info(f"Completed {completed_count} bookings")

    return {"completed": completed_count, "failed": failed_count}
