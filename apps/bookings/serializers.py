"""Serializers for the booking domain.

Serializers only check request shape. Business rules (availability,
balances, lifecycle guards) live in the command handlers.
"""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from shared.application.clock import local_date, system_clock

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Booking details with the actions currently available to the tenant."""

    tenant_id = serializers.ReadOnlyField(source="tenant.id")
    apartment_id = serializers.ReadOnlyField(source="apartment.id")
    owner_id = serializers.ReadOnlyField(source="apartment.owner_id")
    duration_nights = serializers.SerializerMethodField()
    can_cancel = serializers.SerializerMethodField()
    can_modify = serializers.SerializerMethodField()
    can_rate = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "tenant_id",
            "apartment_id",
            "owner_id",
            "check_in_date",
            "check_out_date",
            "duration_nights",
            "number_of_guests",
            "payment_method",
            "total_rent",
            "status",
            "previous_check_in_date",
            "previous_check_out_date",
            "previous_number_of_guests",
            "previous_total_rent",
            "can_cancel",
            "can_modify",
            "can_rate",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def _now(self):
        clock = self.context.get("clock", system_clock)
        return clock()

    def get_duration_nights(self, obj: Booking) -> int:
        return obj.dates.nights

    def get_can_cancel(self, obj: Booking) -> bool:
        return obj.can_cancel(self._now())

    def get_can_modify(self, obj: Booking) -> bool:
        return obj.can_modify(self._now())

    def get_can_rate(self, obj: Booking) -> bool:
        return obj.can_rate(local_date(self._now()))


class BookingCreateSerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField(min_value=1)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    number_of_guests = serializers.IntegerField(
        min_value=1, max_value=20, required=False, allow_null=True
    )
    payment_method = serializers.CharField(max_length=50)

    def validate(self, attrs):  # type: ignore
        if attrs["check_out_date"] <= attrs["check_in_date"]:
            raise serializers.ValidationError(
                {"check_out_date": "Check-out date must be after check-in date"}
            )
        return attrs


class BookingModifySerializer(serializers.Serializer):
    check_in_date = serializers.DateField(required=False)
    check_out_date = serializers.DateField(required=False)
    number_of_guests = serializers.IntegerField(min_value=1, max_value=20, required=False)

    def validate(self, attrs):  # type: ignore
        check_in = attrs.get("check_in_date")
        check_out = attrs.get("check_out_date")
        if check_in and check_out and check_out <= check_in:
            raise serializers.ValidationError(
                {"check_out_date": "Check-out date must be after check-in date"}
            )
        return attrs


class StayQuerySerializer(serializers.Serializer):
    apartment_id = serializers.IntegerField(min_value=1)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField()
    exclude_booking_id = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):  # type: ignore
        if attrs["check_out_date"] <= attrs["check_in_date"]:
            raise serializers.ValidationError(
                {"check_out_date": "Check-out date must be after check-in date"}
            )
        return attrs
