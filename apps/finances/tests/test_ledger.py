"""Tests for the ledger engine and the transaction history API."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.db import transaction
from django.db.models import ProtectedError
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.bookings.tests.helpers import balance_of, make_apartment, make_user
from apps.finances.ledger import Ledger
from apps.finances.models import ImmutableRecordError, Transaction
from apps.users.models import User
from shared.domain.errors import InsufficientFundsError, NotFoundError, ValidationFailureError
from shared.domain.value_objects import Money


def money(value: str) -> Money:
    return Money(Decimal(value))


class TransferTests(TestCase):
    def setUp(self) -> None:
        self.ledger = Ledger()
        self.tenant = make_user("+963944000001", funds="500.00")
        self.owner = make_user("+963944000002", role=User.RoleChoices.OWNER)

    def test_transfer_moves_money_and_writes_two_rows(self) -> None:
        receipt = self.ledger.transfer(
            self.tenant.pk, self.owner.pk, money("120.50"), payer_description="Rent"
        )

        self.assertEqual(balance_of(self.tenant), Decimal("379.50"))
        self.assertEqual(balance_of(self.owner), Decimal("120.50"))
        debit = Transaction.objects.get(pk=receipt.payer_transaction_id)
        credit = Transaction.objects.get(pk=receipt.payee_transaction_id)
        self.assertEqual(debit.direction, Transaction.Direction.DEBIT)
        self.assertEqual(debit.type, Transaction.Type.RENT_PAYMENT)
        self.assertEqual(debit.related_user_id, self.owner.pk)
        self.assertEqual(debit.description, "Rent")
        self.assertEqual(credit.direction, Transaction.Direction.CREDIT)
        self.assertEqual(credit.user_id, self.owner.pk)

    def test_whole_balance_can_be_spent(self) -> None:
        self.ledger.transfer(self.tenant.pk, self.owner.pk, money("500.00"))
        self.assertEqual(balance_of(self.tenant), Decimal("0.00"))

    def test_insufficient_funds_changes_nothing(self) -> None:
        before = Transaction.objects.count()

        with self.assertRaises(InsufficientFundsError) as ctx:
            self.ledger.transfer(self.tenant.pk, self.owner.pk, money("500.01"))

        self.assertEqual(ctx.exception.context["balance"], "500.00")
        self.assertEqual(balance_of(self.tenant), Decimal("500.00"))
        self.assertEqual(balance_of(self.owner), Decimal("0.00"))
        self.assertEqual(Transaction.objects.count(), before)

    def test_invalid_amounts_and_parties(self) -> None:
        with self.assertRaises(ValidationFailureError):
            self.ledger.transfer(self.tenant.pk, self.owner.pk, Money.zero())
        with self.assertRaises(ValidationFailureError):
            self.ledger.transfer(self.tenant.pk, self.owner.pk, Decimal("10"))
        with self.assertRaises(ValidationFailureError):
            self.ledger.transfer(self.tenant.pk, self.tenant.pk, money("10"))

    def test_unknown_user(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            self.ledger.transfer(self.tenant.pk, 987654, money("10"))
        self.assertEqual(ctx.exception.context["user_ids"], [987654])
        self.assertEqual(balance_of(self.tenant), Decimal("500.00"))

    def test_transfers_in_both_directions(self) -> None:
        self.ledger.transfer(self.tenant.pk, self.owner.pk, money("200"))
        self.ledger.transfer(self.owner.pk, self.tenant.pk, money("50"))

        self.assertEqual(balance_of(self.tenant), Decimal("350.00"))
        self.assertEqual(balance_of(self.owner), Decimal("150.00"))


class SplitRefundTests(TestCase):
    def setUp(self) -> None:
        self.ledger = Ledger()
        self.tenant = make_user("+963944000001")
        self.owner = make_user("+963944000002", role=User.RoleChoices.OWNER, funds="1000.00")

    def test_eighty_twenty_split(self) -> None:
        receipt = self.ledger.split_refund(self.owner.pk, self.tenant.pk, money("100.00"))

        self.assertEqual(receipt.refund, money("80.00"))
        self.assertEqual(receipt.fee, money("20.00"))
        self.assertEqual(balance_of(self.tenant), Decimal("80.00"))
        self.assertEqual(balance_of(self.owner), Decimal("920.00"))
        fee_row = Transaction.objects.get(pk=receipt.fee_transaction_id)
        self.assertEqual(fee_row.direction, Transaction.Direction.MEMO)
        self.assertEqual(fee_row.related_user_id, self.tenant.pk)

    def test_rounding_is_half_up_per_part(self) -> None:
        receipt = self.ledger.split_refund(self.owner.pk, self.tenant.pk, money("33.33"))

        self.assertEqual(receipt.refund, money("26.66"))
        self.assertEqual(receipt.fee, money("6.67"))

    def test_memo_fee_does_not_affect_history_balance(self) -> None:
        self.ledger.split_refund(self.owner.pk, self.tenant.pk, money("33.33"))

        for user in (self.owner, self.tenant):
            self.assertEqual(self.ledger.balance_from_history(user.pk), balance_of(user))


class SingleAccountTests(TestCase):
    def setUp(self) -> None:
        self.ledger = Ledger()
        self.user = make_user("+963944000001")

    def test_deposit_then_withdraw(self) -> None:
        deposit = self.ledger.deposit(self.user.pk, money("75.25"), "Cash top-up")
        self.assertEqual(deposit.balance, Decimal("75.25"))

        withdrawal = self.ledger.withdraw(self.user.pk, money("25.25"))
        self.assertEqual(withdrawal.balance, Decimal("50.00"))
        self.assertEqual(self.ledger.balance_from_history(self.user.pk), Decimal("50.00"))

    def test_withdraw_more_than_balance(self) -> None:
        with self.assertRaises(InsufficientFundsError):
            self.ledger.withdraw(self.user.pk, money("0.01"))
        self.assertFalse(Transaction.objects.filter(user=self.user).exists())

    def test_history_of_new_user_is_zero(self) -> None:
        self.assertEqual(self.ledger.balance_from_history(self.user.pk), Decimal("0.00"))


class TransactionImmutabilityTests(TestCase):
    def setUp(self) -> None:
        self.user = make_user("+963944000001", funds="10.00")
        self.row = Transaction.objects.get(user=self.user)

    def test_rows_cannot_be_edited(self) -> None:
        self.row.amount = Decimal("999.00")
        with self.assertRaises(ImmutableRecordError):
            self.row.save()

    def test_rows_cannot_be_deleted(self) -> None:
        with self.assertRaises(ImmutableRecordError):
            self.row.delete()
        with self.assertRaises(ImmutableRecordError):
            Transaction.objects.filter(pk=self.row.pk).delete()
        with self.assertRaises(ImmutableRecordError):
            Transaction.objects.filter(pk=self.row.pk).update(amount=Decimal("1.00"))

        self.row.refresh_from_db()
        self.assertEqual(self.row.amount, Decimal("10.00"))

    def test_paid_booking_cannot_be_deleted(self) -> None:
        owner = make_user("+963944000002", role=User.RoleChoices.OWNER)
        booking = Booking.objects.create(
            tenant=self.user,
            apartment=make_apartment(owner),
            check_in_date=date(2025, 6, 10),
            check_out_date=date(2025, 6, 11),
            payment_method="wallet",
            total_rent=Decimal("10.00"),
        )
        Ledger().transfer(self.user.pk, owner.pk, money("10.00"), booking_id=booking.pk)

        with self.assertRaises(ProtectedError):
            with transaction.atomic():
                booking.delete()

        self.assertEqual(Transaction.objects.filter(related_booking=booking).count(), 2)


class TransactionAPITests(APITestCase):
    def setUp(self) -> None:
        self.tenant = make_user("+963944000001", funds="300.00")
        self.owner = make_user("+963944000002", role=User.RoleChoices.OWNER)
        Ledger().transfer(self.tenant.pk, self.owner.pk, money("100.00"))
        self.client.force_authenticate(self.tenant)

    def test_lists_only_own_transactions(self) -> None:
        response = self.client.get(reverse("transaction-list"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual(len(rows), 2)
        self.assertEqual({row["type"] for row in rows}, {"deposit", "rent_payment"})

    def test_filters_by_type(self) -> None:
        response = self.client.get(reverse("transaction-list"), {"type": "rent_payment"})

        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["direction"], "debit")
        self.assertEqual(rows[0]["related_user_id"], self.owner.pk)

    def test_unknown_type_is_a_bad_request(self) -> None:
        response = self.client.get(reverse("transaction-list"), {"type": "gift"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("type", response.data)

    def test_filters_by_direction(self) -> None:
        response = self.client.get(reverse("transaction-list"), {"direction": "credit"})

        rows = response.data["results"] if isinstance(response.data, dict) else response.data
        self.assertEqual([row["type"] for row in rows], ["deposit"])

    def test_balance_matches_history(self) -> None:
        response = self.client.get(reverse("transaction-balance"))

        self.assertEqual(response.data, {"balance": "200.00", "balance_from_history": "200.00"})

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(None)
        response = self.client.get(reverse("transaction-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
