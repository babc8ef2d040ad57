"""
Order events
The lifecycle engine announces committed transitions through the
order_transitioned signal. Receivers (see apps.marketplace.signals) send
notifications; nothing they do can affect the transition itself.
"""

import logging

from django.dispatch import Signal

logger = logging.getLogger(__name__)

ORDER_PLACED = 'order_placed'
ORDER_ACCEPTED = 'order_accepted'
ORDER_REJECTED = 'order_rejected'
DELIVERY_CLAIMED = 'delivery_claimed'
ORDER_PICKED_UP = 'order_picked_up'
ORDER_DELIVERED = 'order_delivered'
ORDER_CANCELLED = 'order_cancelled'

# Sent with sender=Order and kwargs: order, event
order_transitioned = Signal()


def dispatch_order_event(event: str, order) -> int:
    """
    Fire-and-forget delivery of one event to every receiver.
    Returns how many receivers failed.
    """
    from ..models import Order

    responses = order_transitioned.send_robust(sender=Order, order=order, event=event)

    failures = 0
    for receiver, response in responses:
        if isinstance(response, Exception):
            failures += 1
            logger.error(
                f'{event} receiver {getattr(receiver, "__name__", receiver)} failed '
                f'for order {order.pk}: {response}'
            )
    return failures
