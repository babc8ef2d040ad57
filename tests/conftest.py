import pytest
from django.contrib.auth import get_user_model

from apps.marketplace.models import DELIVERY, PICKUP, Order, Product
from apps.marketplace.services import (
    CartLine, Identity, OrderLifecycleEngine, ProductAvailabilityGate, WalletLedger
)

CAMPUS = 'Kaduna State University'


@pytest.fixture(autouse=True)
def marketplace_settings(settings):
    settings.UNIVEND_WALLET_STARTING_BALANCE = 10000
    settings.UNIVEND_DELIVERY_FEE = 500
    settings.UNIVEND_TRANSITION_MAX_ATTEMPTS = 3
    settings.UNIVEND_TRANSITION_BACKOFF = 0.01


@pytest.fixture
def make_user(db):
    def _make_user(email, role='buyer', **extra):
        extra.setdefault('university', CAMPUS)
        return get_user_model().objects.create_user(
            email=email,
            password='pass12345',
            role=role,
            **extra
        )
    return _make_user


@pytest.fixture
def buyer(make_user):
    return make_user('ada@students.unilag.edu.ng', username='Ada', address='Hall 3, Room 12')


@pytest.fixture
def other_buyer(make_user):
    return make_user('bayo@students.unilag.edu.ng', username='Bayo', address='Hall 1, Room 4')


@pytest.fixture
def vendor(make_user):
    return make_user('chioma@students.unilag.edu.ng', role='vendor', username="Chioma's Thrift")


@pytest.fixture
def rider(make_user):
    return make_user('dayo@students.unilag.edu.ng', role='rider', username='Dayo')


@pytest.fixture
def other_rider(make_user):
    return make_user('emeka@students.unilag.edu.ng', role='rider', username='Emeka')


@pytest.fixture
def make_product(vendor):
    def _make_product(title='Denim jacket', price=6000, methods=(DELIVERY, PICKUP), owner=None, **extra):
        return Product.objects.create(
            vendor=owner or vendor,
            title=title,
            category=extra.pop('category', 'fashion'),
            price=price,
            delivery_methods=list(methods),
            university=CAMPUS,
            **extra
        )
    return _make_product


@pytest.fixture
def ledger(db):
    return WalletLedger()


@pytest.fixture
def gate(db):
    return ProductAvailabilityGate()


@pytest.fixture
def engine(ledger, gate):
    return OrderLifecycleEngine(ledger=ledger, gate=gate)


@pytest.fixture
def place(engine):
    """Place an order for the given products and return the Order"""
    def _place(user, products, method=DELIVERY):
        result = engine.place_order(
            [CartLine(product=p) for p in products],
            Identity.from_user(user),
            method,
        )
        assert result.success, result.message
        return result.data['order']
    return _place


@pytest.fixture
def advance_to(engine, place, make_product, buyer, rider):
    """
    Build an order and drive it through the lifecycle up to `status`.
    """
    def _advance_to(status, method=DELIVERY, products=None):
        order = place(buyer, products or [make_product()], method)
        if status == Order.Status.PENDING_CONFIRMATION:
            return order

        assert engine.accept_order(order.pk).success
        if status in (Order.Status.PENDING, Order.Status.READY_FOR_PICKUP):
            return Order.objects.get(pk=order.pk)

        assert engine.accept_delivery(order.pk, rider.pk).success
        if status == Order.Status.OUT_FOR_DELIVERY:
            return Order.objects.get(pk=order.pk)

        assert engine.mark_picked_up(order.pk).success
        return Order.objects.get(pk=order.pk)

    return _advance_to
