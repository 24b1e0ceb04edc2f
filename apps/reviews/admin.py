"""Admin registration for ratings."""

from __future__ import annotations

from django.contrib import admin

from .models import Rating


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ('id', 'booking', 'apartment', 'tenant', 'rating', 'created_at')
    list_filter = ('rating',)
    search_fields = ('tenant__phone', 'review_text')
    readonly_fields = ('booking', 'apartment', 'tenant', 'created_at', 'updated_at')
