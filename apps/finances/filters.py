"""FilterSet for the transaction history endpoint."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Transaction


class TransactionFilterSet(django_filters.FilterSet):
    """``?type=``, ``?direction=`` and ``?booking=`` on the caller's history."""

    type = django_filters.ChoiceFilter(choices=Transaction.Type.choices)
    direction = django_filters.ChoiceFilter(choices=Transaction.Direction.choices)
    booking = django_filters.NumberFilter(field_name="related_booking_id", lookup_expr="exact")

    class Meta:
        model = Transaction
        fields = ["type", "direction", "booking"]
