"""
Marketplace Models
Products, orders, wallets, the wallet ledger, reviews, in-app notifications
and buyer-vendor chats.

Order status and wallet balances are only ever written by the services in
apps.marketplace.services; views and admin treat them as read-only.
"""

from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import (
    MinValueValidator, MaxValueValidator, MinLengthValidator, MaxLengthValidator
)
from django.utils import timezone
import uuid


DELIVERY = 'delivery'
PICKUP = 'pickup'

DELIVERY_METHOD_CHOICES = [
    (DELIVERY, 'Delivery'),
    (PICKUP, 'Pickup'),
]

CATEGORY_CHOICES = [
    ('fashion', 'Fashion & Accessories'),
    ('electronics', 'Tech & Electronics'),
    ('food', 'Food & Beverages'),
    ('beauty', 'Beauty & Personal Care'),
    ('stationery', 'Education & Stationery'),
    ('home', 'Home & Lifestyle'),
    ('sports', 'Sports & Fitness'),
    ('services', 'Services'),
    ('events', 'Events & Entertainment'),
    ('misc', 'Miscellaneous'),
]


# ==========================================
# PRODUCTS
# ==========================================

class Product(models.Model):
    """
    A single listed item. Products are sold once: the availability gate
    flips status to 'sold' when an order for it is accepted and paid.
    """

    AVAILABLE = 'available'
    SOLD = 'sold'

    STATUS_CHOICES = [
        (AVAILABLE, 'Available'),
        (SOLD, 'Sold'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='products'
    )

    # Basic Info
    title = models.CharField(max_length=200)
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES)
    description = models.TextField(blank=True)
    image_url = models.URLField(max_length=500, blank=True)
    university = models.CharField(max_length=200, blank=True)

    # Whole naira, no kobo
    price = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    delivery_methods = models.JSONField(
        default=list,
        help_text="Subset of ['delivery', 'pickup'] the vendor offers"
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=AVAILABLE)
    sold_at = models.DateTimeField(null=True, blank=True)

    # Ratings
    review_count = models.PositiveIntegerField(default=0)
    average_rating = models.FloatField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Product"
        verbose_name_plural = "Products"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['vendor', 'status'], name='marketplace_vendor__0b1c9e_idx'),
            models.Index(fields=['university', 'status'], name='marketplace_univers_4d2f7a_idx'),
        ]

    def __str__(self):
        return self.title

    def clean(self):
        """Delivery methods must be a non-empty subset of the known methods"""
        methods = self.delivery_methods
        valid = {DELIVERY, PICKUP}

        if not isinstance(methods, list) or not methods:
            raise ValidationError({'delivery_methods': 'Choose at least one delivery method.'})

        unknown = [m for m in methods if m not in valid]
        if unknown:
            raise ValidationError({
                'delivery_methods': f"Unknown delivery method(s): {', '.join(map(str, unknown))}"
            })

    def save(self, *args, **kwargs):
        # Keep a stable order and drop duplicates
        if isinstance(self.delivery_methods, list):
            self.delivery_methods = [m for m in (DELIVERY, PICKUP) if m in self.delivery_methods]

        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def is_available(self):
        return self.status == self.AVAILABLE

    def supports(self, delivery_method):
        return delivery_method in (self.delivery_methods or [])


class Review(models.Model):
    """
    Buyer review of a product. Aggregates live on the product itself.
    """
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='reviews')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    user_name = models.CharField(max_length=150)

    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(
        validators=[MinLengthValidator(10), MaxLengthValidator(1000)]
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Review"
        verbose_name_plural = "Reviews"
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.product.title} - {self.rating}/5"


# ==========================================
# ORDERS
# ==========================================

class Order(models.Model):
    """
    A buyer's purchase from exactly one vendor.

    Items are a snapshot taken at checkout. total is always
    subtotal + delivery_fee and is recomputed on every save.
    """

    class Status(models.TextChoices):
        PENDING_CONFIRMATION = 'pending-confirmation', 'Pending Confirmation'
        PENDING = 'pending', 'Pending'
        READY_FOR_PICKUP = 'ready-for-pickup', 'Ready for Pickup'
        OUT_FOR_DELIVERY = 'out-for-delivery', 'Out for Delivery'
        PROCESSING = 'processing', 'Processing'
        DELIVERED = 'delivered', 'Delivered'
        REJECTED = 'rejected', 'Rejected'
        CANCELLED = 'cancelled', 'Cancelled'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        REFUNDED = 'refunded', 'Refunded'

    TERMINAL_STATUSES = (Status.DELIVERED, Status.REJECTED, Status.CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='purchases'
    )
    buyer_name = models.CharField(max_length=150, blank=True)
    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='sales'
    )
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='deliveries',
        null=True,
        blank=True
    )

    # Pricing
    subtotal = models.PositiveIntegerField()
    delivery_fee = models.PositiveIntegerField(default=0)
    total = models.PositiveIntegerField()

    # Lifecycle
    status = models.CharField(
        max_length=30,
        choices=Status.choices,
        default=Status.PENDING_CONFIRMATION
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )

    # Fulfilment
    delivery_method = models.CharField(max_length=20, choices=DELIVERY_METHOD_CHOICES)
    delivery_address = models.TextField(blank=True)
    university = models.CharField(max_length=200, blank=True)
    cancellation_reason = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)
    accepted_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'university'], name='marketplace_status_8e31c2_idx'),
            models.Index(fields=['vendor', 'status'], name='marketplace_vendor__5a6d10_idx'),
            models.Index(fields=['buyer', 'status'], name='marketplace_buyer_i_c97b4e_idx'),
        ]

    def __str__(self):
        return f"Order #{self.short_id} - {self.status}"

    def clean(self):
        """Reject combinations the lifecycle can never produce"""
        errors = {}

        if self.total != self.subtotal + self.delivery_fee:
            errors['total'] = 'Total must equal subtotal plus delivery fee.'

        if self.delivery_method == DELIVERY:
            if not (self.delivery_address or '').strip():
                errors['delivery_address'] = 'A delivery address is required for delivery orders.'
            if self.delivery_fee <= 0:
                errors['delivery_fee'] = 'Delivery orders carry a delivery fee.'
        elif self.delivery_method == PICKUP:
            if self.delivery_fee != 0:
                errors['delivery_fee'] = 'Pickup orders have no delivery fee.'
            if self.rider_id:
                errors['rider'] = 'Pickup orders are never assigned a rider.'

        unpaid_states = (self.Status.PENDING_CONFIRMATION, self.Status.REJECTED)
        if self.payment_status == self.PaymentStatus.PAID and self.status in unpaid_states:
            errors['payment_status'] = f'An order in {self.status} cannot be paid.'

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.total = self.subtotal + self.delivery_fee
        self.updated_at = timezone.now()
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def short_id(self):
        return str(self.id)[:8]

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_delivery(self):
        return self.delivery_method == DELIVERY

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.PAID


class OrderItem(models.Model):
    """
    Snapshot of one cart line. Deliberately not a foreign key to Product:
    later edits to the product never change what was ordered.
    """
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')

    product_id = models.UUIDField()
    title = models.CharField(max_length=200)
    price = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    image_url = models.URLField(max_length=500, blank=True)

    class Meta:
        verbose_name = "Order Item"
        verbose_name_plural = "Order Items"
        ordering = ['id']

    def __str__(self):
        return f"{self.title} x{self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Order items are immutable once the order exists.')
        super().save(*args, **kwargs)

    @property
    def line_total(self):
        return self.price * self.quantity


# ==========================================
# WALLET & LEDGER
# ==========================================

class Wallet(models.Model):
    """
    Prepaid balance, one per user. Only WalletLedger mutates balance,
    and every mutation is paired with a WalletTransaction.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='wallet',
        primary_key=True
    )

    # Never negative; guarded by the ledger before every debit
    balance = models.IntegerField(default=0)
    # Balance the wallet was created with; the origin for ledger replay
    opening_balance = models.IntegerField(default=0, editable=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Wallet"
        verbose_name_plural = "Wallets"

    def __str__(self):
        return f"{self.user}'s Wallet - ₦{self.balance}"


class WalletTransaction(models.Model):
    """
    Append-only ledger entry documenting one balance change.
    """

    CREDIT = 'credit'
    DEBIT = 'debit'

    TRANSACTION_TYPE_CHOICES = [
        (CREDIT, 'Credit'),
        (DEBIT, 'Debit'),
    ]

    RELATED_ENTITY_CHOICES = [
        ('order', 'Order'),
        ('funding', 'Funding'),
    ]

    wallet = models.ForeignKey(Wallet, on_delete=models.PROTECT, related_name='transactions')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='wallet_transactions'
    )
    transaction_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)

    # Transaction Details
    transaction_type = models.CharField(max_length=10, choices=TRANSACTION_TYPE_CHOICES)
    amount = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    description = models.TextField(blank=True)
    reference = models.CharField(max_length=100, blank=True)

    # Traceability
    related_entity_type = models.CharField(max_length=20, choices=RELATED_ENTITY_CHOICES, blank=True)
    related_entity_id = models.CharField(max_length=64, blank=True)

    # Balances around this entry
    balance_before = models.IntegerField()
    balance_after = models.IntegerField()

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Wallet Transaction"
        verbose_name_plural = "Wallet Transactions"
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='marketplace_user_id_3f8a21_idx'),
            models.Index(fields=['related_entity_type', 'related_entity_id'], name='marketplace_related_b6e0d4_idx'),
        ]

    def __str__(self):
        return f"{self.transaction_type} - ₦{self.amount} - {self.user}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Wallet transactions are append-only.')
        super().save(*args, **kwargs)

    @property
    def signed_amount(self):
        return self.amount if self.transaction_type == self.CREDIT else -self.amount


# ==========================================
# NOTIFICATIONS
# ==========================================

class Notification(models.Model):
    """
    In-app notifications for buyers, vendors and riders
    """

    TYPE_CHOICES = [
        ('order', 'Order Update'),
        ('payment', 'Payment'),
        ('delivery', 'Delivery'),
        ('system', 'System Message'),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )

    notification_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField()
    link = models.CharField(max_length=500, blank=True)

    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.title} → {self.user}"

    def mark_read(self):
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])


# ==========================================
# CHAT
# ==========================================

class Chat(models.Model):
    """
    Conversation between a buyer and the vendor about one product.
    There is at most one chat per (product, buyer).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='chats')
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='buyer_chats'
    )
    vendor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='vendor_chats'
    )

    # Product snapshot shown in chat lists
    product_title = models.CharField(max_length=200)
    product_image_url = models.URLField(max_length=500, blank=True)

    # Latest message preview
    last_message_text = models.TextField(blank=True)
    last_message_sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    last_message_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Chat"
        verbose_name_plural = "Chats"
        ordering = ['-last_message_at', '-created_at']
        constraints = [
            models.UniqueConstraint(fields=['product', 'buyer'], name='unique_chat_per_product_buyer'),
        ]

    def __str__(self):
        return f"{self.product_title}: {self.buyer} ↔ {self.vendor}"

    @property
    def participant_ids(self):
        return (self.buyer_id, self.vendor_id)

    def other_party_id(self, user_id):
        return self.vendor_id if user_id == self.buyer_id else self.buyer_id


class Message(models.Model):
    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name='messages')
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='chat_messages'
    )
    text = models.TextField(validators=[MinLengthValidator(1), MaxLengthValidator(1000)])
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = "Message"
        verbose_name_plural = "Messages"
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.sender}: {self.text[:40]}"
