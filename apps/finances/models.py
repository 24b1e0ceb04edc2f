"""Financial domain models for the apartment rentals platform."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class ImmutableRecordError(Exception):
    """Raised when code tries to update or delete a ledger record."""


class TransactionQuerySet(models.QuerySet):
    def update(self, **kwargs):  # type: ignore
        raise ImmutableRecordError("Ledger transactions cannot be updated.")

    def delete(self):  # type: ignore
        raise ImmutableRecordError("Ledger transactions cannot be deleted.")


class Transaction(models.Model):
    """Immutable audit record of a balance movement for one user.

    Every balance change is paired with exactly one row per affected user.
    ``direction`` tells how the row affects that user's balance; ``memo``
    rows (the cancellation fee) are informational and move no money.
    """

    class Type(models.TextChoices):
        DEPOSIT = "deposit", _("Deposit")
        WITHDRAWAL = "withdrawal", _("Withdrawal")
        RENT_PAYMENT = "rent_payment", _("Rent payment")
        REFUND = "refund", _("Refund")
        CANCELLATION_FEE = "cancellation_fee", _("Cancellation fee")

    class Direction(models.TextChoices):
        CREDIT = "credit", _("Credit")
        DEBIT = "debit", _("Debit")
        MEMO = "memo", _("Memo (no balance change)")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    direction = models.CharField(max_length=10, choices=Direction.choices)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    related_booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )
    related_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="counterpart_transactions",
    )
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now, editable=False)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        verbose_name = _("Transaction")
        verbose_name_plural = _("Transactions")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="transaction_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="transaction_user_created_idx"),
            models.Index(fields=["type"], name="transaction_type_idx"),
            models.Index(fields=["related_booking"], name="transaction_booking_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.direction} {self.amount} for user {self.user_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            raise ImmutableRecordError("Ledger transactions cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):  # type: ignore
        raise ImmutableRecordError("Ledger transactions cannot be deleted.")
