import pytest
import requests
from django.core import mail

from apps.marketplace.models import DELIVERY, Notification, Order
from apps.marketplace.services import events, notification_service
from apps.marketplace.services.notifications import EmailService, PushService


@pytest.fixture
def live_email(monkeypatch):
    """Real email through Django's (test) mail backend instead of mock mode"""
    monkeypatch.setattr(notification_service.email, 'use_mock', False)


def test_placing_an_order_notifies_vendor_after_commit(
    django_capture_on_commit_callbacks, place, buyer, vendor, make_product
):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        order = place(buyer, [make_product()], DELIVERY)

    assert len(callbacks) == 1
    note = Notification.objects.get(user=vendor)
    assert note.notification_type == 'order'
    assert order.short_id in note.message
    assert note.link == f'/orders/{order.pk}/'


def test_no_notification_before_commit(place, buyer, make_product):
    place(buyer, [make_product()], DELIVERY)

    assert Notification.objects.count() == 0


def test_failed_transition_sends_nothing(django_capture_on_commit_callbacks, engine, place, buyer, make_product):
    order = place(buyer, [make_product()], DELIVERY)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        result = engine.reject_order(order.pk)
        again = engine.reject_order(order.pk)

    assert result.success and not again.success
    assert len(callbacks) == 1


def test_delivery_pays_out_notifications_to_vendor_and_rider(
    django_capture_on_commit_callbacks, engine, advance_to, buyer, vendor, rider
):
    order = advance_to(Order.Status.PROCESSING)

    with django_capture_on_commit_callbacks(execute=True):
        engine.mark_delivered(order.pk)

    assert Notification.objects.filter(user=vendor, notification_type='payment').count() == 1
    assert Notification.objects.filter(user=rider, notification_type='payment').count() == 1
    assert Notification.objects.filter(user=buyer, notification_type='delivery').exists()


def test_receiver_failure_does_not_undo_the_transition(
    django_capture_on_commit_callbacks, monkeypatch, place, buyer, make_product
):
    def broken(order):
        raise RuntimeError('SMTP down')

    monkeypatch.setattr(notification_service, 'send_new_order', broken)

    with django_capture_on_commit_callbacks(execute=True):
        order = place(buyer, [make_product()], DELIVERY)

    assert Order.objects.filter(pk=order.pk).exists()


def test_dispatch_counts_failing_receivers(place, buyer, make_product):
    order = place(buyer, [make_product()], DELIVERY)

    def failing_receiver(sender, order, event, **kwargs):
        raise ValueError('boom')

    events.order_transitioned.connect(failing_receiver)
    try:
        assert events.dispatch_order_event(events.ORDER_CANCELLED, order) == 1
    finally:
        events.order_transitioned.disconnect(failing_receiver)


def test_buyer_gets_status_email(django_capture_on_commit_callbacks, live_email, engine, place, buyer, make_product):
    order = place(buyer, [make_product()], DELIVERY)

    with django_capture_on_commit_callbacks(execute=True):
        engine.accept_order(order.pk)

    subjects = [(m.to, m.subject) for m in mail.outbox]
    assert ([buyer.email], f'[Univend] Order Update - #{order.short_id}') in subjects


def test_email_service_sends_through_django_mail(settings):
    service = EmailService()
    service.use_mock = False

    assert service.send_email('ada@students.unilag.edu.ng', 'Hello', 'Welcome to Univend')

    assert len(mail.outbox) == 1
    assert mail.outbox[0].from_email == settings.DEFAULT_FROM_EMAIL


def test_email_service_skips_missing_address():
    assert EmailService().send_email('', 'Hello', 'Nobody') is False


class _Response:
    def __init__(self, status_code):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f'{self.status_code} error')


def _live_push(monkeypatch, status_code, calls):
    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({'url': url, 'headers': headers, 'json': json})
        return _Response(status_code)

    monkeypatch.setattr(requests, 'post', fake_post)
    service = PushService()
    service.use_mock = False
    service.gateway_url = 'https://push.example.test/send'
    service.gateway_key = 'secret'
    return service


def test_push_posts_to_gateway(monkeypatch):
    calls = []
    service = _live_push(monkeypatch, 200, calls)

    assert service.send_push('device-token-123', 'Order Update', 'Delivered', {'order_id': 42})

    assert calls[0]['headers']['Authorization'] == 'Bearer secret'
    assert calls[0]['json']['data'] == {'order_id': '42'}


def test_push_gateway_error_is_reported_not_raised(monkeypatch):
    service = _live_push(monkeypatch, 502, [])

    assert service.send_push('device-token-123', 'Order Update', 'Delivered') is False


def test_push_without_token_is_skipped():
    assert PushService().send_push('', 'Title', 'Body') is False
