"""
Marketplace App Signals
In-app notifications, emails and pushes for committed order transitions.

Receivers run after the transaction commits (see services.events), so they
only ever see durable state. Anything they raise is logged by the dispatcher.
"""

import logging

from django.dispatch import receiver

from .models import Notification
from .services import events
from .services.notifications import notification_service
from .services.utils import format_currency

logger = logging.getLogger(__name__)


def _notify(user, notification_type, title, message, order):
    if user is None:
        return None
    notification = Notification.objects.create(
        user=user,
        notification_type=notification_type,
        title=title,
        message=message,
        link=f'/orders/{order.pk}/',
    )
    logger.info(f"Notification '{title}' created for {user.email}")
    return notification


# ==========================================
# ORDER SIGNALS
# ==========================================

@receiver(events.order_transitioned)
def notify_order_placed(sender, order, event, **kwargs):
    """
    Vendor: new order waiting for confirmation. Buyer: receipt.
    """
    if event != events.ORDER_PLACED:
        return

    _notify(
        order.vendor,
        'order',
        'New Order Received! 🛒',
        f'{order.buyer_name} placed order #{order.short_id} worth '
        f'{format_currency(order.total)}. Please confirm it promptly.',
        order,
    )
    notification_service.send_new_order(order)
    notification_service.send_order_confirmation(order)


@receiver(events.order_transitioned)
def notify_buyer_of_status(sender, order, event, **kwargs):
    """
    Buyer: every transition after checkout changes what they should expect
    """
    if event == events.ORDER_PLACED:
        return

    notification_type = 'delivery' if event in (
        events.DELIVERY_CLAIMED, events.ORDER_PICKED_UP, events.ORDER_DELIVERED
    ) else 'order'

    _notify(
        order.buyer,
        notification_type,
        f'Order #{order.short_id}: {order.get_status_display()}',
        f'Your order is now {order.get_status_display().lower()}.',
        order,
    )
    notification_service.send_order_status_update(order)


@receiver(events.order_transitioned)
def notify_payees_on_delivery(sender, order, event, **kwargs):
    """
    Vendor (and rider, for delivery orders): wallet was credited
    """
    if event != events.ORDER_DELIVERED:
        return

    _notify(
        order.vendor,
        'payment',
        'Payment Received 💰',
        f'{format_currency(order.subtotal)} for order #{order.short_id} is now in your wallet.',
        order,
    )
    notification_service.send_payment_received(order.vendor, order.subtotal, order)

    if order.is_delivery and order.rider_id and order.delivery_fee > 0:
        _notify(
            order.rider,
            'payment',
            'Delivery Fee Received 💰',
            f'{format_currency(order.delivery_fee)} for delivering order #{order.short_id} '
            f'is now in your wallet.',
            order,
        )
        notification_service.send_payment_received(order.rider, order.delivery_fee, order)


@receiver(events.order_transitioned)
def notify_vendor_of_cancellation(sender, order, event, **kwargs):
    if event != events.ORDER_CANCELLED:
        return

    _notify(
        order.vendor,
        'order',
        'Order Cancelled',
        f'Order #{order.short_id} was cancelled. {order.cancellation_reason}'.strip(),
        order,
    )
    notification_service.send_order_cancelled_to_vendor(order)

    if order.rider_id:
        _notify(
            order.rider,
            'delivery',
            'Delivery Cancelled',
            f'Order #{order.short_id} was cancelled; you no longer need to deliver it.',
            order,
        )
