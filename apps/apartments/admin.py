"""Admin registration for apartments."""

from __future__ import annotations

from django.contrib import admin

from .models import Apartment


@admin.register(Apartment)
class ApartmentAdmin(admin.ModelAdmin):
    list_display = ("id", "address", "city", "owner", "nightly_price", "monthly_price", "status")
    list_filter = ("status", "governorate", "city")
    search_fields = ("address", "city", "owner__phone")
    readonly_fields = ("created_at", "updated_at")
