"""Admin registrations for the users domain."""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(BaseUserAdmin):
    fieldsets = (
        (None, {"fields": ("phone", "password")}),
        (_("Personal info"), {"fields": ("username", "first_name", "last_name", "email")}),
        (_("Role and wallet"), {"fields": ("role", "balance")}),
        (
            _("Permissions"),
            {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")},
        ),
        (_("Important dates"), {"fields": ("last_login", "date_joined", "created_at", "updated_at")}),
    )
    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("phone", "password1", "password2", "first_name", "last_name", "role"),
            },
        ),
    )
    list_display = ("phone", "role", "first_name", "last_name", "balance", "is_active")
    list_filter = ("role", "is_active", "is_staff")
    search_fields = ("phone", "first_name", "last_name", "email")
    ordering = ("phone",)
    # Balance changes go through the ledger only
    readonly_fields = ("balance", "created_at", "updated_at", "date_joined")
