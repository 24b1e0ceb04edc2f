"""Serializers for the finance domain (ledger transactions)."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Transaction


class TransactionSerializer(serializers.ModelSerializer):
    """Read-only view of a ledger row."""

    related_booking_id = serializers.ReadOnlyField(source="related_booking.id")
    related_user_id = serializers.ReadOnlyField(source="related_user.id")

    class Meta:
        model = Transaction
        fields = [
            "id",
            "type",
            "direction",
            "amount",
            "related_booking_id",
            "related_user_id",
            "description",
            "created_at",
        ]
        read_only_fields = fields
