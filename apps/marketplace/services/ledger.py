"""
Wallet Ledger
The only code allowed to change a wallet balance. Every change is a
conditional update keyed on the balance that was read, paired with an
append-only WalletTransaction written in the same database transaction.

Replaying a user's transactions from the wallet's opening balance always
gives the stored balance (see replay_balance / reconcile).
"""

import logging
from typing import List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Sum
from django.utils import timezone

from ..models import Wallet, WalletTransaction
from .errors import (
    ErrorKind, InsufficientFundsError, InvalidAmountError, NotFoundError, WriteConflict
)
from .results import ServiceResult
from .transitions import LifecycleTransition
from .types import RelatedEntity
from .utils import generate_reference

logger = logging.getLogger(__name__)


def starting_balance() -> int:
    return int(getattr(settings, 'UNIVEND_WALLET_STARTING_BALANCE', 50000))


def _check_amount(amount):
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError()


class WalletLedger:
    """
    Service class for wallet balances and their transaction history
    """

    def __init__(self, using: str = 'default'):
        self.using = using

    def _wallets(self):
        return Wallet.objects.using(self.using)

    def _transactions(self):
        return WalletTransaction.objects.using(self.using)

    # ==========================================
    # WALLETS
    # ==========================================

    def get_or_create_wallet(self, user_id) -> Wallet:
        """
        Return the user's wallet, creating it with the starting balance
        on first access. Safe to call repeatedly.

        Raises:
            NotFoundError: no such user
        """
        wallet = self._wallets().filter(pk=user_id).first()
        if wallet is not None:
            return wallet

        if not get_user_model().objects.using(self.using).filter(pk=user_id).exists():
            raise NotFoundError(f'No user with id {user_id}.')

        opening = starting_balance()
        wallet, created = self._wallets().get_or_create(
            pk=user_id,
            defaults={
                'balance': opening,
                'opening_balance': opening,
                'updated_at': timezone.now(),
            }
        )

        if created:
            logger.info(f'Wallet created for user {user_id} with ₦{wallet.balance}')

        return wallet

    def balance(self, user_id) -> int:
        return self.get_or_create_wallet(user_id).balance

    # ==========================================
    # MUTATIONS (raise; call inside an atomic unit)
    # ==========================================

    def apply_debit(
        self,
        user_id,
        amount: int,
        description: str,
        related_entity: Optional[RelatedEntity] = None
    ) -> WalletTransaction:
        """
        Decrement the balance and append a debit entry.

        Raises:
            InvalidAmountError: amount <= 0
            InsufficientFundsError: amount > current balance
            WriteConflict: the balance changed after it was read
        """
        _check_amount(amount)

        wallet = self._lock(user_id)
        if amount > wallet.balance:
            raise InsufficientFundsError(
                balance=wallet.balance,
                required=amount,
            )

        return self._write(wallet, WalletTransaction.DEBIT, amount, description, related_entity)

    def apply_credit(
        self,
        user_id,
        amount: int,
        description: str,
        related_entity: Optional[RelatedEntity] = None
    ) -> WalletTransaction:
        """
        Increment the balance and append a credit entry.

        Raises:
            InvalidAmountError: amount <= 0
            WriteConflict: the balance changed after it was read
        """
        _check_amount(amount)

        wallet = self._lock(user_id)
        return self._write(wallet, WalletTransaction.CREDIT, amount, description, related_entity)

    def _lock(self, user_id) -> Wallet:
        self.get_or_create_wallet(user_id)
        return self._wallets().select_for_update().get(pk=user_id)

    def _write(self, wallet, transaction_type, amount, description, related_entity) -> WalletTransaction:
        seen = wallet.balance
        new_balance = seen - amount if transaction_type == WalletTransaction.DEBIT else seen + amount
        now = timezone.now()

        updated = self._wallets().filter(pk=wallet.pk, balance=seen).update(
            balance=new_balance,
            updated_at=now,
        )
        if updated != 1:
            raise WriteConflict(f'wallet {wallet.pk} balance moved from ₦{seen}')

        entry = WalletTransaction(
            wallet_id=wallet.pk,
            user_id=wallet.pk,
            transaction_type=transaction_type,
            amount=amount,
            description=description,
            reference=generate_reference('DR' if transaction_type == WalletTransaction.DEBIT else 'CR'),
            related_entity_type=related_entity.entity_type if related_entity else '',
            related_entity_id=related_entity.entity_id if related_entity else '',
            balance_before=seen,
            balance_after=new_balance,
            created_at=now,
        )
        entry.save(using=self.using)

        logger.info(
            f'{transaction_type} ₦{amount} on wallet {wallet.pk}: ₦{seen} → ₦{new_balance}'
        )
        return entry

    # ==========================================
    # PUBLIC OPERATIONS (return ServiceResult)
    # ==========================================

    def debit(self, user_id, amount: int, description: str,
              related_entity: Optional[RelatedEntity] = None) -> ServiceResult:
        def unit():
            entry = self.apply_debit(user_id, amount, description, related_entity)
            return {'transaction': entry, 'balance': entry.balance_after}

        return LifecycleTransition('wallet.debit', using=self.using).run(unit)

    def credit(self, user_id, amount: int, description: str,
               related_entity: Optional[RelatedEntity] = None) -> ServiceResult:
        def unit():
            entry = self.apply_credit(user_id, amount, description, related_entity)
            return {'transaction': entry, 'balance': entry.balance_after}

        return LifecycleTransition('wallet.credit', using=self.using).run(unit)

    def fund_wallet(self, user_id, amount: int) -> ServiceResult:
        """
        Top up a wallet from outside the marketplace (no payment gateway;
        the amount is trusted).
        """
        reference = generate_reference('FUND')
        return self.credit(
            user_id,
            amount,
            'Wallet funding',
            RelatedEntity.funding(reference),
        )

    def list_transactions(self, user_id, limit: Optional[int] = None, offset: int = 0) -> List[WalletTransaction]:
        """Newest first"""
        queryset = self.transactions_queryset(user_id)
        if limit is not None:
            return list(queryset[offset:offset + limit])
        return list(queryset[offset:])

    def transactions_queryset(self, user_id):
        return self._transactions().filter(user_id=user_id).order_by('-created_at', '-id')

    # ==========================================
    # AUDIT
    # ==========================================

    def replay_balance(self, user_id) -> int:
        """Opening balance plus every credit minus every debit"""
        wallet = self._wallets().filter(pk=user_id).first()
        opening = wallet.opening_balance if wallet is not None else starting_balance()

        totals = self._transactions().filter(user_id=user_id).values('transaction_type').annotate(
            total=Sum('amount')
        )
        by_type = {row['transaction_type']: row['total'] or 0 for row in totals}
        return (
            opening
            + by_type.get(WalletTransaction.CREDIT, 0)
            - by_type.get(WalletTransaction.DEBIT, 0)
        )

    def reconcile(self, user_id) -> ServiceResult:
        wallet = self._wallets().filter(pk=user_id).first()
        if wallet is None:
            return ServiceResult.fail(ErrorKind.NOT_FOUND, f'No wallet for user {user_id}.')

        replayed = self.replay_balance(user_id)
        consistent = replayed == wallet.balance
        if not consistent:
            logger.error(
                f'Wallet {user_id} out of balance: stored ₦{wallet.balance}, replayed ₦{replayed}'
            )

        return ServiceResult.ok(balance=wallet.balance, replayed=replayed, consistent=consistent)


# Singleton instance
wallet_ledger = WalletLedger()
