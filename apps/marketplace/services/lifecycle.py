"""
Order Lifecycle Engine
Drives an order through its states and applies the wallet and product
effects each transition owns.

    pending-confirmation --accept--> pending            (delivery)
    pending-confirmation --accept--> ready-for-pickup   (pickup)
    pending-confirmation --reject--> rejected
    pending              --rider claims--> out-for-delivery
    out-for-delivery     --picked up-->    processing
    processing           --delivered-->    delivered
    ready-for-pickup     --handed over-->  delivered
    any non-terminal     --cancel-->       cancelled

Every transition is one LifecycleTransition: the status guard, wallet
writes, product writes and the status write commit together or not at all.
Status writes are conditional on the status that was read, so a transition
can never be applied twice and a lost race surfaces as InvalidState.
"""

import logging
import uuid
from functools import partial
from typing import Iterable, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..models import DELIVERY, PICKUP, Order, OrderItem
from . import events
from .availability import ProductAvailabilityGate
from .errors import (
    ErrorKind, InvalidStateError, NotFoundError, WriteConflict
)
from .ledger import WalletLedger
from .results import ServiceResult
from .transitions import LifecycleTransition
from .types import CartLine, Identity, RelatedEntity
from .utils import calculate_order_totals

logger = logging.getLogger(__name__)

Status = Order.Status


class OrderLifecycleEngine:
    """
    Service class for every order state change.

    The ledger and availability gate are injected so the whole engine can
    be pointed at another database alias (or stubbed in tests).
    """

    def __init__(
        self,
        using: str = 'default',
        ledger: Optional[WalletLedger] = None,
        gate: Optional[ProductAvailabilityGate] = None
    ):
        self.using = using
        self.ledger = ledger or WalletLedger(using=using)
        self.gate = gate or ProductAvailabilityGate(using=using)

    def _orders(self):
        return Order.objects.using(self.using)

    # ==========================================
    # CHECKOUT
    # ==========================================

    def place_order(
        self,
        cart: Iterable[CartLine],
        buyer: Identity,
        delivery_method: str,
        order_id=None
    ) -> ServiceResult:
        """
        Create an order awaiting vendor confirmation.

        This is a quote, not a payment: no wallet is touched and products
        stay available until the vendor accepts.
        """
        lines = list(cart or [])

        if not lines:
            return ServiceResult.fail(ErrorKind.VALIDATION_ERROR, 'Your cart is empty.')

        if delivery_method not in (DELIVERY, PICKUP):
            return ServiceResult.fail(ErrorKind.VALIDATION_ERROR, 'Choose delivery or pickup.')

        for line in lines:
            if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
                return ServiceResult.fail(
                    ErrorKind.VALIDATION_ERROR,
                    f'Invalid quantity for {line.product.title}.'
                )

        vendor_id = lines[0].product.vendor_id
        if not vendor_id:
            return ServiceResult.fail(ErrorKind.VALIDATION_ERROR, 'Product vendor information is missing.')

        if any(line.product.vendor_id != vendor_id for line in lines):
            return ServiceResult.fail(
                ErrorKind.VALIDATION_ERROR,
                'All items in an order must come from the same vendor.'
            )

        if not all(line.product.supports(delivery_method) for line in lines):
            return ServiceResult.fail(
                ErrorKind.VALIDATION_ERROR,
                'One or more items in your cart do not support the selected delivery method.'
            )

        address = (buyer.address or '').strip()
        if delivery_method == DELIVERY and not address:
            return ServiceResult.fail(
                ErrorKind.VALIDATION_ERROR,
                'Add a delivery address to your profile before choosing delivery.'
            )

        new_id = order_id or uuid.uuid4()

        def unit():
            if self._orders().filter(pk=new_id).exists():
                raise InvalidStateError('This order has already been placed.')

            self.gate.assert_available(line.product.pk for line in lines)

            subtotal, delivery_fee, total = calculate_order_totals(
                ((line.product.price, line.quantity) for line in lines),
                delivery_method,
            )

            order = Order(
                id=new_id,
                buyer_id=buyer.user_id,
                buyer_name=buyer.display_name or 'Anonymous',
                vendor_id=vendor_id,
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                total=total,
                delivery_method=delivery_method,
                delivery_address=address if delivery_method == DELIVERY else '',
                university=buyer.university or '',
            )
            order.save(using=self.using, force_insert=True)

            OrderItem.objects.using(self.using).bulk_create([
                OrderItem(
                    order=order,
                    product_id=line.product.pk,
                    title=line.product.title,
                    price=line.product.price,
                    quantity=line.quantity,
                    image_url=line.product.image_url,
                )
                for line in lines
            ])
            return {'order': order}

        return self._run('order.place', unit, events.ORDER_PLACED)

    # ==========================================
    # VENDOR DECISION
    # ==========================================

    def accept_order(self, order_id) -> ServiceResult:
        """
        Capture payment: debit the buyer, mark every item sold and move the
        order on to pending (delivery) or ready-for-pickup (pickup).
        """
        def unit():
            order = self._lock(order_id)
            self._expect(order, Status.PENDING_CONFIRMATION)

            product_ids = list(order.items.values_list('product_id', flat=True))

            # Re-checked here, in the same unit as the debit, so two orders
            # for one product can never both capture funds
            self.gate.assert_available(product_ids)

            self.ledger.apply_debit(
                order.buyer_id,
                order.total,
                f'Payment for order {order.short_id}',
                RelatedEntity.order(order.pk),
            )
            self.gate.apply_mark_sold(product_ids)

            now = timezone.now()
            self._advance(
                order,
                status=Status.PENDING if order.is_delivery else Status.READY_FOR_PICKUP,
                payment_status=Order.PaymentStatus.PAID,
                paid_at=now,
                accepted_at=now,
            )
            return {'order': order}

        return self._run('order.accept', unit, events.ORDER_ACCEPTED)

    def reject_order(self, order_id) -> ServiceResult:
        def unit():
            order = self._lock(order_id)
            self._expect(order, Status.PENDING_CONFIRMATION)
            self._advance(order, status=Status.REJECTED)
            return {'order': order}

        return self._run('order.reject', unit, events.ORDER_REJECTED)

    # ==========================================
    # RIDER FLOW
    # ==========================================

    def accept_delivery(self, order_id, rider_id) -> ServiceResult:
        """
        First claim wins. The write only matches a pending, unassigned
        order, so a second rider racing for it gets InvalidState.
        """
        def unit():
            order = self._lock(order_id)

            if not order.is_delivery:
                raise InvalidStateError('Pickup orders are not delivered by riders.')
            if order.status != Status.PENDING or order.rider_id is not None:
                raise InvalidStateError('This delivery is no longer available.')

            if not get_user_model().objects.using(self.using).filter(pk=rider_id).exists():
                raise NotFoundError('Rider not found.')

            self._advance(
                order,
                extra_filters={'rider__isnull': True},
                rider_id=rider_id,
                status=Status.OUT_FOR_DELIVERY,
            )
            return {'order': order}

        return self._run('order.accept_delivery', unit, events.DELIVERY_CLAIMED)

    def mark_picked_up(self, order_id) -> ServiceResult:
        def unit():
            order = self._lock(order_id)
            self._expect(order, Status.OUT_FOR_DELIVERY)
            self._advance(order, status=Status.PROCESSING)
            return {'order': order}

        return self._run('order.picked_up', unit, events.ORDER_PICKED_UP)

    # ==========================================
    # COMPLETION
    # ==========================================

    def mark_delivered(self, order_id) -> ServiceResult:
        """
        Settle the order: credit the vendor the subtotal and, for
        delivery orders, the rider the delivery fee.
        """
        def unit():
            order = self._lock(order_id)
            self._expect(order, Status.PROCESSING, Status.READY_FOR_PICKUP)

            if order.is_delivery and order.rider_id is None:
                raise InvalidStateError('No rider assigned to this order.')

            related = RelatedEntity.order(order.pk)
            self.ledger.apply_credit(
                order.vendor_id,
                order.subtotal,
                f'Earnings from order {order.short_id}',
                related,
            )
            if order.is_delivery and order.delivery_fee > 0:
                self.ledger.apply_credit(
                    order.rider_id,
                    order.delivery_fee,
                    f'Delivery fee for order {order.short_id}',
                    related,
                )

            self._advance(order, status=Status.DELIVERED, delivered_at=timezone.now())
            return {'order': order}

        return self._run('order.deliver', unit, events.ORDER_DELIVERED)

    def cancel_order(self, order_id, reason: str = '') -> ServiceResult:
        """
        Cancel from any non-terminal state. A paid order is refunded to the
        buyer in full; sold products stay sold.
        """
        def unit():
            order = self._lock(order_id)
            if order.is_terminal:
                raise InvalidStateError('This order can no longer be cancelled.')

            changes = {
                'status': Status.CANCELLED,
                'cancelled_at': timezone.now(),
                'cancellation_reason': reason or '',
            }

            if order.is_paid:
                self.ledger.apply_credit(
                    order.buyer_id,
                    order.total,
                    f'Refund for cancelled order {order.short_id}',
                    RelatedEntity.order(order.pk),
                )
                changes['payment_status'] = Order.PaymentStatus.REFUNDED

            self._advance(order, **changes)
            return {'order': order}

        return self._run('order.cancel', unit, events.ORDER_CANCELLED)

    # ==========================================
    # QUERIES
    # ==========================================

    def get_order(self, order_id) -> ServiceResult:
        try:
            order = self._orders().prefetch_related('items').get(pk=order_id)
        except (Order.DoesNotExist, ValueError, ValidationError):
            return ServiceResult.fail(ErrorKind.NOT_FOUND, 'Order not found.')
        return ServiceResult.ok(order=order)

    def orders_for_buyer(self, user_id):
        return self._orders().filter(buyer_id=user_id).prefetch_related('items')

    def orders_for_vendor(self, user_id, status: Optional[str] = None):
        orders = self._orders().filter(vendor_id=user_id).prefetch_related('items')
        if status:
            orders = orders.filter(status=status)
        return orders

    def deliveries_for_rider(self, user_id):
        return self._orders().filter(rider_id=user_id).prefetch_related('items')

    def available_deliveries(self, university: str):
        """Paid delivery orders on the rider's campus that nobody has claimed"""
        return self._orders().filter(
            status=Status.PENDING,
            delivery_method=DELIVERY,
            rider__isnull=True,
            university=university,
        ).prefetch_related('items').order_by('created_at')

    # ==========================================
    # INTERNALS
    # ==========================================

    def _run(self, name: str, unit, event: str) -> ServiceResult:
        result = LifecycleTransition(name, using=self.using).run(unit)

        if result.success:
            order = result.data['order']
            # Notifications go out only once the transaction is durable
            transaction.on_commit(
                partial(events.dispatch_order_event, event, order),
                using=self.using,
            )
        return result

    def _lock(self, order_id) -> Order:
        try:
            return self._orders().select_for_update().get(pk=order_id)
        except (Order.DoesNotExist, ValueError, ValidationError):
            raise NotFoundError('Order not found.')

    @staticmethod
    def _expect(order: Order, *statuses) -> None:
        if order.status not in statuses:
            raise InvalidStateError(
                f'This order has already been actioned (it is {order.get_status_display().lower()}).',
                status=order.status,
            )

    def _advance(self, order: Order, extra_filters: Optional[dict] = None, **changes) -> None:
        """
        Apply changes with a write conditioned on the status we read.
        The new state is validated against the model invariants first.
        """
        expected_status = order.status

        for field_name, value in changes.items():
            setattr(order, field_name, value)
        order.updated_at = timezone.now()
        order.clean()

        changes['updated_at'] = order.updated_at
        updated = self._orders().filter(
            pk=order.pk,
            status=expected_status,
            **(extra_filters or {})
        ).update(**changes)

        if updated != 1:
            raise WriteConflict(f'order {order.pk} left {expected_status} before this write')

        logger.info(f'Order {order.short_id}: {expected_status} → {order.status}')


# Singleton instance
order_engine = OrderLifecycleEngine()
