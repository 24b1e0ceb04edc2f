"""API views for the wallet ledger.

Transactions are read-only over HTTP. Money moves only through the
booking lifecycle or through ``Ledger`` deposit/withdraw calls made by
trusted code.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .filters import TransactionFilterSet
from .ledger import Ledger
from .models import Transaction
from .serializers import TransactionSerializer


class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """The caller's own transaction history."""

    serializer_class = TransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    ledger = Ledger()

    filter_backends = [DjangoFilterBackend]
    filterset_class = TransactionFilterSet

    def get_queryset(self):  # type: ignore
        return Transaction.objects.select_related("related_booking", "related_user").filter(
            user=self.request.user
        )

    @action(detail=False, methods=["get"])
    def balance(self, request):  # type: ignore
        """Stored balance next to the balance rebuilt from history."""
        user = request.user
        user.refresh_from_db(fields=["balance"])
        return Response(
            {
                "balance": f"{user.balance:.2f}",
                "balance_from_history": f"{self.ledger.balance_from_history(user.pk):.2f}",
            }
        )
