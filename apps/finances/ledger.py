"""
Ledger

Owns user balances and the transaction audit trail. Every balance change
happens inside a unit of work together with one Transaction row per
affected user, so a transfer is never half-applied.

When called from a lifecycle command the ledger's unit of work is nested
inside the command's one and becomes a savepoint: the money movement
commits or rolls back together with the booking change.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.db.models import Q, Sum

from apps.finances.models import Transaction
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import (
    InsufficientFundsError,
    LedgerFailureError,
    NotFoundError,
    ValidationFailureError,
)
from shared.domain.value_objects import Money, quantize_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferReceipt:
    """Outcome of a two-party transfer"""
    payer_id: int
    payee_id: int
    amount: Money
    payer_transaction_id: int
    payee_transaction_id: int


@dataclass(frozen=True)
class SplitRefundReceipt:
    """Outcome of a cancellation refund"""
    refund: Money
    fee: Money
    transfer: TransferReceipt | None
    fee_transaction_id: int | None


@dataclass(frozen=True)
class BalanceChange:
    """Outcome of a single-party deposit or withdrawal"""
    user_id: int
    amount: Money
    balance: Decimal
    transaction_id: int


class Ledger:
    """
    Balance and transaction engine

    Users are always locked in primary-key order so that transfers in
    opposite directions between the same pair cannot deadlock.
    """

    REFUND_RATIO = Decimal('0.80')
    FEE_RATIO = Decimal('0.20')

    def __init__(self, uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork):
        self._uow_factory = uow_factory

    # ------------------------------------------------------------------
    # Two-party operations
    # ------------------------------------------------------------------

    def transfer(
        self,
        payer_id: int,
        payee_id: int,
        amount: Money,
        *,
        booking_id: int | None = None,
        kind: str = Transaction.Type.RENT_PAYMENT,
        payer_description: str = '',
        payee_description: str = '',
    ) -> TransferReceipt:
        """
        Move ``amount`` from payer to payee

        Writes a debit row for the payer and a credit row for the payee,
        each pointing at the other party and at the booking.

        Raises:
            ValidationFailureError: amount is not positive or payer == payee
            NotFoundError: a party does not exist
            InsufficientFundsError: payer balance is lower than amount
            LedgerFailureError: storage error, nothing was applied
        """
        self._require_positive(amount)
        if payer_id == payee_id:
            raise ValidationFailureError("Payer and payee must differ", user_id=payer_id)

        try:
            with self._uow_factory():
                receipt = self._apply_transfer(
                    payer_id,
                    payee_id,
                    amount,
                    booking_id=booking_id,
                    kind=kind,
                    payer_description=payer_description,
                    payee_description=payee_description,
                )
        except DatabaseError as e:
            logger.error(
                f"Ledger transfer {payer_id} -> {payee_id} of {amount} failed: {e}",
                exc_info=True,
            )
            raise LedgerFailureError(
                payer_id=payer_id, payee_id=payee_id, booking_id=booking_id
            ) from e

        logger.info(
            f"Transferred {amount} ({kind}) from user {payer_id} to user {payee_id} "
            f"for booking {booking_id}"
        )
        return receipt

    def split_refund(
        self,
        owner_id: int,
        tenant_id: int,
        total: Money,
        *,
        booking_id: int | None = None,
    ) -> SplitRefundReceipt:
        """
        Cancellation refund: 80% back to the tenant, 20% retained as fee

        The fee is recorded as a memo row against the owner. It moves no
        money, so refund and fee need not add up to ``total`` after
        rounding.
        """
        refund = total * self.REFUND_RATIO
        fee = total * self.FEE_RATIO

        try:
            with self._uow_factory():
                receipt = None
                if refund.is_positive():
                    receipt = self._apply_transfer(
                        owner_id,
                        tenant_id,
                        refund,
                        booking_id=booking_id,
                        kind=Transaction.Type.REFUND,
                        payer_description=f"Refund (80%) for cancelled booking #{booking_id}",
                        payee_description=f"Refund (80%) for cancelled booking #{booking_id}",
                    )
                fee_row = None
                if fee.is_positive():
                    fee_row = Transaction.objects.create(
                        user_id=owner_id,
                        type=Transaction.Type.CANCELLATION_FEE,
                        direction=Transaction.Direction.MEMO,
                        amount=fee.amount,
                        related_booking_id=booking_id,
                        related_user_id=tenant_id,
                        description=f"Cancellation fee (20%) for booking #{booking_id}",
                    )
        except DatabaseError as e:
            logger.error(
                f"Ledger split refund for booking {booking_id} failed: {e}", exc_info=True
            )
            raise LedgerFailureError(
                payer_id=owner_id, payee_id=tenant_id, booking_id=booking_id
            ) from e

        logger.info(
            f"Split refund for booking {booking_id}: refund {refund} to user {tenant_id}, "
            f"fee {fee} retained by user {owner_id}"
        )
        return SplitRefundReceipt(
            refund=refund,
            fee=fee,
            transfer=receipt,
            fee_transaction_id=fee_row.pk if fee_row else None,
        )

    # ------------------------------------------------------------------
    # Single-party operations
    # ------------------------------------------------------------------

    def deposit(self, user_id: int, amount: Money, description: str = '') -> BalanceChange:
        """Top up a wallet"""
        return self._single_party(
            user_id, amount, Transaction.Type.DEPOSIT, Transaction.Direction.CREDIT, description
        )

    def withdraw(self, user_id: int, amount: Money, description: str = '') -> BalanceChange:
        """Take money out of a wallet; fails with InsufficientFunds"""
        return self._single_party(
            user_id, amount, Transaction.Type.WITHDRAWAL, Transaction.Direction.DEBIT, description
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_from_history(self, user_id: int) -> Decimal:
        """Reconstruct a balance from zero: credits minus debits, memo rows excluded"""
        totals = Transaction.objects.filter(user_id=user_id).aggregate(
            credits=Sum('amount', filter=Q(direction=Transaction.Direction.CREDIT)),
            debits=Sum('amount', filter=Q(direction=Transaction.Direction.DEBIT)),
        )
        credits = totals['credits'] or Decimal('0')
        debits = totals['debits'] or Decimal('0')
        return quantize_money(credits - debits)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_transfer(
        self,
        payer_id: int,
        payee_id: int,
        amount: Money,
        *,
        booking_id: int | None,
        kind: str,
        payer_description: str,
        payee_description: str,
    ) -> TransferReceipt:
        users = self._lock_users([payer_id, payee_id])
        payer = users[payer_id]
        payee = users[payee_id]

        if payer.balance < amount.amount:
            logger.info(
                f"Insufficient funds: user {payer_id} has {payer.balance}, needs {amount}"
            )
            raise InsufficientFundsError(
                user_id=payer_id,
                balance=str(payer.balance),
                required=str(amount.amount),
            )

        payer.balance = quantize_money(payer.balance - amount.amount)
        payee.balance = quantize_money(payee.balance + amount.amount)
        payer.save(update_fields=['balance', 'updated_at'])
        payee.save(update_fields=['balance', 'updated_at'])

        debit = Transaction.objects.create(
            user_id=payer_id,
            type=kind,
            direction=Transaction.Direction.DEBIT,
            amount=amount.amount,
            related_booking_id=booking_id,
            related_user_id=payee_id,
            description=payer_description,
        )
        credit = Transaction.objects.create(
            user_id=payee_id,
            type=kind,
            direction=Transaction.Direction.CREDIT,
            amount=amount.amount,
            related_booking_id=booking_id,
            related_user_id=payer_id,
            description=payee_description,
        )
        return TransferReceipt(
            payer_id=payer_id,
            payee_id=payee_id,
            amount=amount,
            payer_transaction_id=debit.pk,
            payee_transaction_id=credit.pk,
        )

    def _single_party(
        self,
        user_id: int,
        amount: Money,
        kind: str,
        direction: str,
        description: str,
    ) -> BalanceChange:
        self._require_positive(amount)
        try:
            with self._uow_factory():
                user = self._lock_users([user_id])[user_id]
                if direction == Transaction.Direction.DEBIT:
                    if user.balance < amount.amount:
                        raise InsufficientFundsError(
                            user_id=user_id,
                            balance=str(user.balance),
                            required=str(amount.amount),
                        )
                    user.balance = quantize_money(user.balance - amount.amount)
                else:
                    user.balance = quantize_money(user.balance + amount.amount)
                user.save(update_fields=['balance', 'updated_at'])
                row = Transaction.objects.create(
                    user_id=user_id,
                    type=kind,
                    direction=direction,
                    amount=amount.amount,
                    description=description,
                )
        except DatabaseError as e:
            logger.error(f"Ledger {kind} for user {user_id} failed: {e}", exc_info=True)
            raise LedgerFailureError(user_id=user_id) from e

        logger.info(f"{kind.capitalize()} of {amount} for user {user_id}")
        return BalanceChange(
            user_id=user_id, amount=amount, balance=user.balance, transaction_id=row.pk
        )

    @staticmethod
    def _lock_users(user_ids: Iterable[int]) -> dict:
        ids = sorted(set(user_ids))
        User = get_user_model()
        users = {
            user.pk: user
            for user in User.objects.select_for_update().filter(pk__in=ids).order_by('pk')
        }
        missing = [pk for pk in ids if pk not in users]
        if missing:
            raise NotFoundError("User not found", user_ids=missing)
        return users

    @staticmethod
    def _require_positive(amount: Money):
        if not isinstance(amount, Money):
            raise ValidationFailureError("Amount must be Money", amount=repr(amount))
        if not amount.is_positive():
            raise ValidationFailureError("Amount must be positive", amount=str(amount.amount))
