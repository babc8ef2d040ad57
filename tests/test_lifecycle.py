import uuid

import pytest
from django.db import transaction

from apps.marketplace.models import DELIVERY, PICKUP, Order, Product, WalletTransaction
from apps.marketplace.services import CartLine, ErrorKind, Identity
from apps.marketplace.services.errors import WriteConflict

Status = Order.Status


def _product_status(product):
    return Product.objects.get(pk=product.pk).status


def _reload(order):
    return Order.objects.get(pk=order.pk)


# ==========================================
# CHECKOUT
# ==========================================

def test_place_order_snapshots_cart_and_touches_no_wallet(engine, place, buyer, vendor, make_product):
    jacket = make_product(price=6000)
    order = place(buyer, [jacket], DELIVERY)

    assert order.status == Status.PENDING_CONFIRMATION
    assert order.payment_status == Order.PaymentStatus.PENDING
    assert (order.subtotal, order.delivery_fee, order.total) == (6000, 500, 6500)
    assert order.vendor_id == vendor.pk
    assert order.buyer_name == 'Ada'
    assert order.delivery_address == 'Hall 3, Room 12'

    item = order.items.get()
    assert (item.product_id, item.title, item.price, item.quantity) == (jacket.pk, 'Denim jacket', 6000, 1)

    assert _product_status(jacket) == Product.AVAILABLE
    assert WalletTransaction.objects.count() == 0


def test_pickup_order_has_no_fee_and_no_address(place, buyer, make_product):
    order = place(buyer, [make_product(price=3000)], PICKUP)

    assert (order.subtotal, order.delivery_fee, order.total) == (3000, 0, 3000)
    assert order.delivery_address == ''


def test_quantities_multiply_into_subtotal(engine, buyer, make_product):
    result = engine.place_order(
        [CartLine(make_product(price=1500), quantity=2), CartLine(make_product('Cap', price=1000))],
        Identity.from_user(buyer),
        PICKUP,
    )

    assert result.data['order'].subtotal == 4000


def test_place_order_with_caller_supplied_id_only_once(engine, buyer, make_product):
    order_id = uuid.uuid4()
    cart = [CartLine(make_product())]

    first = engine.place_order(cart, Identity.from_user(buyer), PICKUP, order_id=order_id)
    second = engine.place_order(cart, Identity.from_user(buyer), PICKUP, order_id=order_id)

    assert first.success
    assert first.data['order'].pk == order_id
    assert second.error == ErrorKind.INVALID_STATE
    assert Order.objects.count() == 1


@pytest.mark.parametrize('case, message', [
    ('empty', 'Your cart is empty.'),
    ('method', 'Choose delivery or pickup.'),
    ('quantity', 'Invalid quantity for Denim jacket.'),
    ('two_vendors', 'All items in an order must come from the same vendor.'),
    ('unsupported', 'One or more items in your cart do not support the selected delivery method.'),
    ('no_address', 'Add a delivery address to your profile before choosing delivery.'),
])
def test_place_order_guards(engine, buyer, make_user, make_product, case, message):
    method = DELIVERY
    identity = Identity.from_user(buyer)
    cart = [CartLine(make_product())]

    if case == 'empty':
        cart = []
    elif case == 'method':
        method = 'drone'
    elif case == 'quantity':
        cart = [CartLine(cart[0].product, quantity=0)]
    elif case == 'two_vendors':
        other = make_user('femi@students.unilag.edu.ng', role='vendor')
        cart.append(CartLine(make_product('Lamp', owner=other)))
    elif case == 'unsupported':
        cart = [CartLine(make_product('Jollof', methods=[PICKUP]))]
    elif case == 'no_address':
        identity = Identity(user_id=buyer.pk, display_name='Ada', university=buyer.university)

    result = engine.place_order(cart, identity, method)

    assert not result.success
    assert result.error == ErrorKind.VALIDATION_ERROR
    assert result.message == message
    assert Order.objects.count() == 0


def test_place_order_refuses_sold_products(engine, gate, buyer, make_product):
    jacket = make_product()
    gate.mark_sold([jacket.pk])

    result = engine.place_order([CartLine(jacket)], Identity.from_user(buyer), PICKUP)

    assert result.error == ErrorKind.PRODUCT_NO_LONGER_AVAILABLE
    assert Order.objects.count() == 0


# ==========================================
# VENDOR DECISION
# ==========================================

def test_accept_order_captures_payment_and_sells_items(engine, ledger, place, buyer, make_product):
    jacket = make_product(price=6000)
    order = place(buyer, [jacket], DELIVERY)

    result = engine.accept_order(order.pk)

    assert result.success
    order = _reload(order)
    assert order.status == Status.PENDING
    assert order.payment_status == Order.PaymentStatus.PAID
    assert order.paid_at is not None and order.accepted_at is not None
    assert ledger.balance(buyer.pk) == 3500
    assert _product_status(jacket) == Product.SOLD

    debit = WalletTransaction.objects.get(user=buyer)
    assert debit.transaction_type == WalletTransaction.DEBIT
    assert debit.amount == 6500
    assert debit.description == f'Payment for order {order.short_id}'
    assert debit.related_entity_id == str(order.pk)


def test_accept_pickup_order_is_ready_for_pickup(engine, place, buyer, make_product):
    order = place(buyer, [make_product()], PICKUP)

    assert engine.accept_order(order.pk).success
    assert _reload(order).status == Status.READY_FOR_PICKUP


def test_accept_with_insufficient_funds_changes_nothing(engine, ledger, place, buyer, make_product):
    ledger.debit(buyer.pk, 6000, 'Earlier spend')
    jacket = make_product(price=6000)
    order = place(buyer, [jacket], DELIVERY)

    result = engine.accept_order(order.pk)

    assert result.to_dict() == {
        'success': False,
        'error': 'InsufficientFunds',
        'message': 'Insufficient balance, please fund your wallet.',
    }
    assert ledger.balance(buyer.pk) == 4000
    order = _reload(order)
    assert order.status == Status.PENDING_CONFIRMATION
    assert order.payment_status == Order.PaymentStatus.PENDING
    assert _product_status(jacket) == Product.AVAILABLE
    assert WalletTransaction.objects.filter(user=buyer).count() == 1


def test_accept_twice_debits_once(engine, ledger, place, buyer, make_product):
    order = place(buyer, [make_product()], DELIVERY)

    first = engine.accept_order(order.pk)
    second = engine.accept_order(order.pk)

    assert first.success
    assert second.error == ErrorKind.INVALID_STATE
    assert ledger.balance(buyer.pk) == 3500
    assert WalletTransaction.objects.filter(user=buyer).count() == 1


def test_two_orders_for_one_product_capture_funds_once(engine, ledger, place, buyer, other_buyer, make_product):
    jacket = make_product()
    first = place(buyer, [jacket], PICKUP)
    second = place(other_buyer, [jacket], PICKUP)

    assert engine.accept_order(first.pk).success
    result = engine.accept_order(second.pk)

    assert result.error == ErrorKind.PRODUCT_NO_LONGER_AVAILABLE
    assert ledger.balance(other_buyer.pk) == 10000
    assert _reload(second).status == Status.PENDING_CONFIRMATION
    assert WalletTransaction.objects.filter(user=other_buyer).count() == 0


def test_reject_order_leaves_wallet_untouched(engine, ledger, place, buyer, make_product):
    jacket = make_product()
    order = place(buyer, [jacket], DELIVERY)

    assert engine.reject_order(order.pk).success
    assert _reload(order).status == Status.REJECTED

    after = engine.accept_order(order.pk)
    assert after.error == ErrorKind.INVALID_STATE
    assert ledger.balance(buyer.pk) == 10000
    assert _product_status(jacket) == Product.AVAILABLE


def test_unknown_order_is_not_found(engine, db):
    for result in (
        engine.accept_order(uuid.uuid4()),
        engine.reject_order('not-a-uuid'),
        engine.mark_delivered(uuid.uuid4()),
        engine.get_order(uuid.uuid4()),
    ):
        assert result.error == ErrorKind.NOT_FOUND
        assert result.message == 'Order not found.'


# ==========================================
# RIDER FLOW
# ==========================================

def test_first_rider_claim_wins(engine, advance_to, rider, other_rider):
    order = advance_to(Status.PENDING)

    first = engine.accept_delivery(order.pk, rider.pk)
    second = engine.accept_delivery(order.pk, other_rider.pk)

    assert first.success
    assert second.error == ErrorKind.INVALID_STATE
    assert second.message == 'This delivery is no longer available.'
    order = _reload(order)
    assert order.rider_id == rider.pk
    assert order.status == Status.OUT_FOR_DELIVERY


def test_status_write_conflicts_when_order_moved_after_read(engine, advance_to, rider):
    order = advance_to(Status.PENDING)
    stale = _reload(order)

    assert engine.accept_delivery(order.pk, rider.pk).success

    with pytest.raises(WriteConflict):
        with transaction.atomic():
            engine._advance(stale, status=Status.CANCELLED)
    assert _reload(order).status == Status.OUT_FOR_DELIVERY


def test_pickup_orders_cannot_be_claimed(engine, advance_to, rider):
    order = advance_to(Status.READY_FOR_PICKUP, method=PICKUP)

    result = engine.accept_delivery(order.pk, rider.pk)

    assert result.error == ErrorKind.INVALID_STATE
    assert _reload(order).rider_id is None


def test_claim_by_unknown_rider_is_not_found(engine, advance_to):
    order = advance_to(Status.PENDING)

    assert engine.accept_delivery(order.pk, 424242).error == ErrorKind.NOT_FOUND
    assert _reload(order).status == Status.PENDING


def test_picked_up_moves_to_processing(engine, advance_to):
    order = advance_to(Status.OUT_FOR_DELIVERY)

    assert engine.mark_picked_up(order.pk).success
    assert _reload(order).status == Status.PROCESSING


# ==========================================
# COMPLETION
# ==========================================

def test_delivered_credits_vendor_subtotal_and_rider_fee(engine, ledger, advance_to, vendor, rider):
    order = advance_to(Status.PROCESSING)
    vendor_before = ledger.balance(vendor.pk)
    rider_before = ledger.balance(rider.pk)

    result = engine.mark_delivered(order.pk)

    assert result.success
    order = _reload(order)
    assert order.status == Status.DELIVERED
    assert order.delivered_at is not None
    assert ledger.balance(vendor.pk) == vendor_before + 6000
    assert ledger.balance(rider.pk) == rider_before + 500

    credits = WalletTransaction.objects.filter(
        transaction_type=WalletTransaction.CREDIT, related_entity_id=str(order.pk)
    )
    assert sorted(credits.values_list('amount', flat=True)) == [500, 6000]


def test_pickup_handoff_credits_only_vendor(engine, ledger, advance_to, vendor, rider):
    order = advance_to(Status.READY_FOR_PICKUP, method=PICKUP)
    vendor_before = ledger.balance(vendor.pk)

    assert engine.mark_delivered(order.pk).success

    assert _reload(order).status == Status.DELIVERED
    assert ledger.balance(vendor.pk) == vendor_before + 6000
    assert not WalletTransaction.objects.filter(user=rider).exists()


def test_delivered_twice_credits_once(engine, ledger, advance_to, vendor):
    order = advance_to(Status.PROCESSING)

    assert engine.mark_delivered(order.pk).success
    balance = ledger.balance(vendor.pk)

    assert engine.mark_delivered(order.pk).error == ErrorKind.INVALID_STATE
    assert ledger.balance(vendor.pk) == balance


@pytest.mark.parametrize('start, operation', [
    (Status.PENDING_CONFIRMATION, 'accept_delivery'),
    (Status.PENDING_CONFIRMATION, 'mark_picked_up'),
    (Status.PENDING_CONFIRMATION, 'mark_delivered'),
    (Status.PENDING, 'accept_order'),
    (Status.PENDING, 'reject_order'),
    (Status.PENDING, 'mark_picked_up'),
    (Status.PENDING, 'mark_delivered'),
    (Status.OUT_FOR_DELIVERY, 'accept_delivery'),
    (Status.OUT_FOR_DELIVERY, 'mark_delivered'),
    (Status.PROCESSING, 'reject_order'),
    (Status.PROCESSING, 'mark_picked_up'),
])
def test_transitions_from_wrong_state_fail_without_side_effects(
    engine, advance_to, other_rider, start, operation
):
    order = advance_to(start)
    before = _reload(order)
    entries = WalletTransaction.objects.count()

    if operation == 'accept_delivery':
        result = engine.accept_delivery(order.pk, other_rider.pk)
    else:
        result = getattr(engine, operation)(order.pk)

    assert result.error == ErrorKind.INVALID_STATE
    after = _reload(order)
    assert (after.status, after.payment_status, after.rider_id) == (
        before.status, before.payment_status, before.rider_id
    )
    assert WalletTransaction.objects.count() == entries


# ==========================================
# CANCELLATION
# ==========================================

def test_cancel_unpaid_order_has_no_refund(engine, place, buyer, make_product):
    order = place(buyer, [make_product()], PICKUP)

    result = engine.cancel_order(order.pk, reason='Changed my mind')

    assert result.success
    order = _reload(order)
    assert order.status == Status.CANCELLED
    assert order.payment_status == Order.PaymentStatus.PENDING
    assert order.cancellation_reason == 'Changed my mind'
    assert WalletTransaction.objects.count() == 0


def test_cancel_paid_order_refunds_buyer(engine, ledger, advance_to, buyer):
    order = advance_to(Status.OUT_FOR_DELIVERY)

    assert engine.cancel_order(order.pk).success

    order = _reload(order)
    assert order.status == Status.CANCELLED
    assert order.payment_status == Order.PaymentStatus.REFUNDED
    assert ledger.balance(buyer.pk) == 10000
    assert ledger.reconcile(buyer.pk).data['consistent']


def test_cancel_terminal_order_is_invalid_state(engine, advance_to):
    order = advance_to(Status.PROCESSING)
    engine.mark_delivered(order.pk)

    assert engine.cancel_order(order.pk).error == ErrorKind.INVALID_STATE


# ==========================================
# QUERIES & AUDIT
# ==========================================

def test_available_deliveries_lists_unclaimed_paid_orders_on_campus(engine, advance_to, make_product, rider):
    claimable = advance_to(Status.PENDING)
    advance_to(Status.OUT_FOR_DELIVERY, products=[make_product('Lamp', price=1000)])
    advance_to(Status.PENDING_CONFIRMATION, products=[make_product('Cap', price=1000)])
    advance_to(Status.READY_FOR_PICKUP, method=PICKUP, products=[make_product('Mug', price=1000)])

    on_campus = list(engine.available_deliveries(rider.university))

    assert [o.pk for o in on_campus] == [claimable.pk]
    assert list(engine.available_deliveries('Another University')) == []


def test_role_queries(engine, advance_to, buyer, vendor, rider):
    order = advance_to(Status.OUT_FOR_DELIVERY)

    assert [o.pk for o in engine.orders_for_buyer(buyer.pk)] == [order.pk]
    assert [o.pk for o in engine.orders_for_vendor(vendor.pk)] == [order.pk]
    assert list(engine.orders_for_vendor(vendor.pk, status=Status.DELIVERED)) == []
    assert [o.pk for o in engine.deliveries_for_rider(rider.pk)] == [order.pk]


def test_ledger_reconciles_for_every_party_after_full_lifecycle(engine, ledger, advance_to, buyer, vendor, rider):
    order = advance_to(Status.PROCESSING)
    engine.mark_delivered(order.pk)

    for user in (buyer, vendor, rider):
        assert ledger.reconcile(user.pk).data['consistent']
