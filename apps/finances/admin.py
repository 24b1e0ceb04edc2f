"""Admin registration for ledger transactions."""

from __future__ import annotations

from django.contrib import admin

from .models import Transaction


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Audit trail is append-only; the admin never edits or deletes rows."""

    list_display = ("id", "user", "type", "direction", "amount", "related_booking", "created_at")
    list_filter = ("type", "direction")
    search_fields = ("user__phone", "description")

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
