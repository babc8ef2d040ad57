"""
Notification Service
Email and push notifications for buyers, vendors and riders.

Email goes through Django's configured email backend.
Push goes through an HTTP push gateway that fans out to device tokens.

Environment Variables:
- USE_MOCK_NOTIFICATIONS (set to 'True' to only log, default)
- PUSH_GATEWAY_URL, PUSH_GATEWAY_KEY

Every method returns True/False and never raises: a failed notification
must not affect the order it is about.
"""

import os
import logging
from typing import Dict, Optional, List

import requests
from django.conf import settings
from django.contrib.auth import get_user_model

from core.utils.email_service import send_univend_email
from .utils import format_currency

logger = logging.getLogger(__name__)


class EmailService:
    """
    Plain-text email through Django's email backend
    """

    def __init__(self):
        self.use_mock = os.getenv('USE_MOCK_NOTIFICATIONS', 'True').lower() == 'true'

    def send_email(self, to_email: str, subject: str, message: str) -> bool:
        """
        Send email

        Args:
            to_email: Recipient email
            subject: Email subject
            message: Plain text message

        Returns:
            True if sent successfully, False otherwise
        """
        if not to_email:
            return False

        if self.use_mock:
            return self._mock_send_email(to_email, subject, message)

        try:
            send_univend_email(subject, message, [to_email])
            logger.info(f'Email sent to {to_email}: {subject}')
            return True

        except Exception as e:
            logger.error(f'Email send error: {str(e)}')
            return False

    def _mock_send_email(self, to_email: str, subject: str, message: str) -> bool:
        """Mock email sending for testing"""
        logger.info(f'[MOCK EMAIL] To: {to_email} | Subject: {subject}')
        logger.info(f'[MOCK EMAIL] Message: {message[:100]}...')
        return True


class PushService:
    """
    Push notifications through an HTTP gateway
    """

    def __init__(self):
        self.use_mock = os.getenv('USE_MOCK_NOTIFICATIONS', 'True').lower() == 'true'
        self.gateway_url = os.getenv('PUSH_GATEWAY_URL', '')
        self.gateway_key = os.getenv('PUSH_GATEWAY_KEY', '')

    def send_push(self, token: str, title: str, body: str, data: Optional[Dict] = None) -> bool:
        """
        Send one push notification

        Args:
            token: Device token saved on the user
            title: Notification title
            body: Notification body
            data: Extra key/values for the client (e.g. order_id)

        Returns:
            True if the gateway accepted it
        """
        if not token:
            logger.info('User has no push token, skipping push notification.')
            return False

        if self.use_mock:
            return self._mock_send_push(token, title, body)

        if not self.gateway_url:
            logger.warning('Push gateway not configured. Using mock mode.')
            return self._mock_send_push(token, title, body)

        try:
            response = requests.post(
                self.gateway_url,
                headers={
                    'Authorization': f'Bearer {self.gateway_key}',
                    'Content-Type': 'application/json',
                },
                json={
                    'token': token,
                    'notification': {'title': title, 'body': body},
                    'data': {k: str(v) for k, v in (data or {}).items()},
                },
                timeout=10
            )
            response.raise_for_status()
            logger.info(f'Push sent: {title}')
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f'Push send error: {str(e)}')
            return False

    def _mock_send_push(self, token: str, title: str, body: str) -> bool:
        """Mock push sending for testing"""
        logger.info(f'[MOCK PUSH] To: {token[:12]}... | {title}: {body}')
        return True


class NotificationService:
    """
    Main notification service - combines email and push
    """

    def __init__(self):
        self.email = EmailService()
        self.push = PushService()

    def _notify(self, user, subject: str, message: str, data: Optional[Dict] = None) -> bool:
        if user is None:
            return False

        email_sent = self.email.send_email(user.email, subject, message)
        push_sent = self.push.send_push(user.fcm_token, subject, message, data)
        return email_sent or push_sent

    # ==========================================
    # ORDER NOTIFICATIONS
    # ==========================================

    def send_new_order(self, order) -> bool:
        """Vendor: an order is waiting for confirmation"""
        return self._notify(
            order.vendor,
            'New Order for Confirmation!',
            f'{order.buyer_name or "A customer"} has placed an order. '
            f'Please confirm it in your dashboard. ID: {order.short_id}...',
            {'order_id': order.pk},
        )

    def send_order_confirmation(self, order) -> bool:
        """Buyer: receipt for the order they just placed"""
        lines = '\n'.join(
            f'- {item.title} (x{item.quantity}) - {format_currency(item.line_total)}'
            for item in order.items.all()
        )
        return self.email.send_email(
            order.buyer.email,
            f'Order Confirmation #{order.short_id}',
            f"""
Thanks for your order, {order.buyer_name}!

Your order has been sent to the vendor for confirmation. We'll notify you once it's accepted.

Order ID: {order.pk}
{lines}

Subtotal: {format_currency(order.subtotal)}
Delivery Fee: {format_currency(order.delivery_fee)}
Total: {format_currency(order.total)}

You can view your order details in your dashboard.
            """,
        )

    def send_order_status_update(self, order) -> bool:
        """Buyer: the order moved to a new status"""
        status_messages = {
            'pending': 'Your order was accepted and paid. A rider will pick it up soon.',
            'ready-for-pickup': 'Your order was accepted and paid. It is ready for pickup.',
            'rejected': 'The vendor could not fulfil your order. You were not charged.',
            'out-for-delivery': 'A rider has claimed your order.',
            'processing': 'Your order has been picked up and is on its way.',
            'delivered': 'Your order has been delivered. Enjoy your purchase!',
            'cancelled': 'Your order was cancelled.',
        }
        message = status_messages.get(order.status, f'Your order status: {order.get_status_display()}')
        if order.status == 'cancelled' and order.payment_status == 'refunded':
            message += f' {format_currency(order.total)} has been refunded to your wallet.'

        return self._notify(
            order.buyer,
            f'Order Update - #{order.short_id}',
            message,
            {'order_id': order.pk, 'status': order.status},
        )

    def send_order_cancelled_to_vendor(self, order) -> bool:
        return self._notify(
            order.vendor,
            f'Order Cancelled - #{order.short_id}',
            f'Order #{order.short_id} was cancelled. {order.cancellation_reason}'.strip(),
            {'order_id': order.pk},
        )

    # ==========================================
    # WALLET NOTIFICATIONS
    # ==========================================

    def send_payment_received(self, user, amount: int, order) -> bool:
        """Vendor or rider: a completed order credited their wallet"""
        return self._notify(
            user,
            f'Payment Received - {format_currency(amount)}',
            f'{format_currency(amount)} from order #{order.short_id} is now in your wallet.',
            {'order_id': order.pk},
        )

    # ==========================================
    # CHAT NOTIFICATIONS
    # ==========================================

    def send_chat_message(self, recipient_id, sender, chat) -> bool:
        """Push only; chat is too chatty for email"""
        recipient = get_user_model().objects.filter(pk=recipient_id).first()
        if recipient is None:
            return False

        preview = chat.last_message_text
        if len(preview) > 100:
            preview = preview[:97] + '...'

        return self.push.send_push(
            recipient.fcm_token,
            f'New message from {sender.display_name or "a Univend user"}',
            preview,
            {'chat_id': chat.pk, 'product_title': chat.product_title},
        )

    # ==========================================
    # BULK NOTIFICATIONS
    # ==========================================

    def send_bulk_email(self, recipients: List[str], subject: str, message: str) -> Dict[str, int]:
        """
        Send email to multiple recipients

        Returns:
            Dict with 'success' and 'failed' counts
        """
        success_count = 0
        failed_count = 0

        for email in recipients:
            if self.email.send_email(email, subject, message):
                success_count += 1
            else:
                failed_count += 1

        logger.info(f'Bulk email complete: {success_count} success, {failed_count} failed')

        return {
            'success': success_count,
            'failed': failed_count,
            'total': len(recipients)
        }

    def notify_admins(self, subject: str, message: str) -> bool:
        admin_emails = getattr(settings, 'ADMIN_EMAILS', ['admin@univend.ng'])
        result = self.send_bulk_email(admin_emails, subject, message)
        return result['failed'] == 0


# Singleton instance
notification_service = NotificationService()
