"""
Buyer-vendor chat about a product.

One chat per (product, buyer). Sending a message appends it and refreshes
the chat's last-message preview in the same transaction; the other party
gets a push once it commits.
"""

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from ..models import Chat, Message, Product
from .errors import ErrorKind, NotFoundError
from .notifications import notification_service
from .results import ServiceResult
from .transitions import LifecycleTransition
from .types import Identity

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000


class ChatService:

    def __init__(self, using: str = 'default'):
        self.using = using

    def _chats(self):
        return Chat.objects.using(self.using)

    def get_or_create_chat(self, product_id, buyer: Identity) -> ServiceResult:
        """
        Open (or reopen) the buyer's chat with the product's vendor.

        data: {'chat': Chat, 'created': bool}
        """
        def unit():
            try:
                product = Product.objects.using(self.using).get(pk=product_id)
            except (Product.DoesNotExist, ValueError, ValidationError):
                raise NotFoundError('Product not found.')

            if product.vendor_id == buyer.user_id:
                raise ValidationError('You cannot start a chat for your own product.')

            chat, created = self._chats().get_or_create(
                product=product,
                buyer_id=buyer.user_id,
                defaults={
                    'vendor_id': product.vendor_id,
                    'product_title': product.title,
                    'product_image_url': product.image_url,
                }
            )
            if created:
                logger.info(f'Chat {chat.pk} opened by user {buyer.user_id} on product {product.pk}')

            return {'chat': chat, 'created': created}

        return LifecycleTransition('chat.open', using=self.using).run(unit)

    def send_message(self, chat_id, sender: Identity, text: str) -> ServiceResult:
        """
        data: {'chat': Chat, 'message': Message}
        """
        text = (text or '').strip()
        if not 1 <= len(text) <= MAX_MESSAGE_LENGTH:
            return ServiceResult.fail(
                ErrorKind.VALIDATION_ERROR,
                f'Message must be 1-{MAX_MESSAGE_LENGTH} characters.'
            )

        def unit():
            try:
                chat = self._chats().select_for_update().get(pk=chat_id)
            except (Chat.DoesNotExist, ValueError, ValidationError):
                raise NotFoundError('Chat not found.')

            # Outsiders get the same answer as a missing chat
            if sender.user_id not in chat.participant_ids:
                raise NotFoundError('Chat not found.')

            message = Message(chat=chat, sender_id=sender.user_id, text=text, created_at=timezone.now())
            message.save(using=self.using)

            self._chats().filter(pk=chat.pk).update(
                last_message_text=text,
                last_message_sender_id=sender.user_id,
                last_message_at=message.created_at,
            )
            chat.last_message_text = text
            chat.last_message_sender_id = sender.user_id
            chat.last_message_at = message.created_at

            recipient_id = chat.other_party_id(sender.user_id)
            transaction.on_commit(
                lambda: notification_service.send_chat_message(recipient_id, sender, chat),
                using=self.using,
            )

            return {'chat': chat, 'message': message}

        return LifecycleTransition('chat.send', using=self.using).run(unit)

    def chats_for_user(self, user_id):
        """Chats the user is in, most recently active first"""
        return self._chats().filter(
            Q(buyer_id=user_id) | Q(vendor_id=user_id)
        ).select_related('buyer', 'vendor').order_by('-last_message_at', '-created_at')

    def messages_for_chat(self, chat_id):
        return Message.objects.using(self.using).filter(chat_id=chat_id).order_by('created_at', 'id')


# Singleton instance
chat_service = ChatService()
