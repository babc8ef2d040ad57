"""
Competing operations on real threads, each with its own database
connection, released together by a barrier.
"""

import threading

import pytest
from django.db import connection

from apps.marketplace.models import DELIVERY, Order, Product, WalletTransaction
from apps.marketplace.services import ErrorKind

pytestmark = pytest.mark.django_db(transaction=True)

ROUNDS = range(5)


def run_together(*calls):
    """Start every call at the same moment; return their results in order"""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = []

    def worker(index, call):
        try:
            barrier.wait()
            results[index] = call()
        except Exception as e:
            errors.append(e)
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert not errors, errors
    return results


def outcomes(results):
    return sorted((r.success, str(r.error)) for r in results)


@pytest.mark.parametrize('round_no', ROUNDS)
def test_two_accepts_sharing_a_product_capture_it_once(
    round_no, engine, ledger, place, buyer, other_buyer, make_product
):
    jacket = make_product()
    first = place(buyer, [jacket], DELIVERY)
    second = place(other_buyer, [jacket], DELIVERY)
    ledger.get_or_create_wallet(buyer.pk)
    ledger.get_or_create_wallet(other_buyer.pk)

    results = run_together(
        lambda: engine.accept_order(first.pk),
        lambda: engine.accept_order(second.pk),
    )

    assert outcomes(results) == [
        (False, ErrorKind.PRODUCT_NO_LONGER_AVAILABLE.value),
        (True, 'None'),
    ]
    assert Product.objects.get(pk=jacket.pk).status == Product.SOLD
    statuses = sorted(Order.objects.filter(pk__in=[first.pk, second.pk]).values_list('status', flat=True))
    assert statuses == sorted([Order.Status.PENDING, Order.Status.PENDING_CONFIRMATION])
    assert WalletTransaction.objects.filter(transaction_type=WalletTransaction.DEBIT).count() == 1
    assert ledger.reconcile(buyer.pk).data['consistent']
    assert ledger.reconcile(other_buyer.pk).data['consistent']


@pytest.mark.parametrize('round_no', ROUNDS)
def test_two_riders_claiming_one_delivery_only_one_wins(round_no, engine, advance_to, rider, other_rider):
    order = advance_to(Order.Status.PENDING)

    results = run_together(
        lambda: engine.accept_delivery(order.pk, rider.pk),
        lambda: engine.accept_delivery(order.pk, other_rider.pk),
    )

    assert outcomes(results) == [
        (False, ErrorKind.INVALID_STATE.value),
        (True, 'None'),
    ]
    order.refresh_from_db()
    assert order.status == Order.Status.OUT_FOR_DELIVERY
    winner = rider if results[0].success else other_rider
    assert order.rider_id == winner.pk


@pytest.mark.parametrize('round_no', ROUNDS)
def test_two_debits_that_would_overdraw_only_one_succeeds(round_no, ledger, buyer):
    ledger.get_or_create_wallet(buyer.pk)

    results = run_together(
        lambda: ledger.debit(buyer.pk, 6000, 'Spend on one tab'),
        lambda: ledger.debit(buyer.pk, 6000, 'Spend on another tab'),
    )

    assert outcomes(results) == [
        (False, ErrorKind.INSUFFICIENT_FUNDS.value),
        (True, 'None'),
    ]
    assert ledger.balance(buyer.pk) == 4000
    assert WalletTransaction.objects.filter(user=buyer).count() == 1
    assert ledger.reconcile(buyer.pk).data['consistent']
