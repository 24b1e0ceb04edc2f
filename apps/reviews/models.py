"""Models for the review domain.

Defines the ``Rating`` entity: a tenant's score for a completed stay.
A booking can be rated at most once.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.base import EventRecorder

MIN_RATING = 1
MAX_RATING = 5
REVIEW_TEXT_MAX_LENGTH = 500


class Rating(EventRecorder, models.Model):
    """Represents a rating left by a tenant after a completed stay."""

    booking = models.OneToOneField(
        'bookings.Booking',
        on_delete=models.PROTECT,
        related_name='rating',
    )
    apartment = models.ForeignKey(
        'apartments.Apartment',
        on_delete=models.CASCADE,
        related_name='ratings',
    )
    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='ratings',
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING), MaxValueValidator(MAX_RATING)],
        help_text=_('Score from 1 to 5'),
    )
    review_text = models.CharField(max_length=REVIEW_TEXT_MAX_LENGTH, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Rating')
        verbose_name_plural = _('Ratings')
        ordering = ['-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rating__gte=MIN_RATING) & models.Q(rating__lte=MAX_RATING),
                name='rating_value_range',
            ),
        ]
        indexes = [
            models.Index(fields=['apartment', '-created_at'], name='rating_apartment_created_idx'),
        ]

    def __str__(self) -> str:
        return f"Rating {self.rating} by {self.tenant_id} for booking {self.booking_id}"
