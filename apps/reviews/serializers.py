"""Serializers for ratings.

The write serializer checks request shape only; eligibility (completed,
checked out, not yet rated) is decided by ``services.submit_rating``.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import MAX_RATING, MIN_RATING, REVIEW_TEXT_MAX_LENGTH, Rating


class RatingCreateSerializer(serializers.Serializer):
    booking_id = serializers.IntegerField(min_value=1)
    rating = serializers.IntegerField(min_value=MIN_RATING, max_value=MAX_RATING)
    review_text = serializers.CharField(
        max_length=REVIEW_TEXT_MAX_LENGTH, required=False, allow_blank=True, allow_null=True
    )


class RatingSerializer(serializers.ModelSerializer):
    booking_id = serializers.ReadOnlyField(source='booking.id')
    apartment_id = serializers.ReadOnlyField(source='apartment.id')
    tenant_id = serializers.ReadOnlyField(source='tenant.id')

    class Meta:
        model = Rating
        fields = [
            'id',
            'booking_id',
            'apartment_id',
            'tenant_id',
            'rating',
            'review_text',
            'created_at',
        ]
        read_only_fields = fields
