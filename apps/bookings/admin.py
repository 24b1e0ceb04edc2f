"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    """Read-mostly view; status and money change only through the lifecycle."""

    list_display = (
        "id",
        "apartment",
        "tenant",
        "status",
        "check_in_date",
        "check_out_date",
        "total_rent",
        "created_at",
    )
    list_filter = ("status", "check_in_date", "check_out_date")
    search_fields = ("tenant__phone", "apartment__address", "apartment__city")
    readonly_fields = (
        "tenant",
        "apartment",
        "status",
        "total_rent",
        "previous_check_in_date",
        "previous_check_out_date",
        "previous_number_of_guests",
        "previous_total_rent",
        "created_at",
        "updated_at",
    )

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
