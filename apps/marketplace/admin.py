"""
Marketplace App Django Admin
Provides admin interface for products, orders, wallets, the ledger and chats.

Balances, ledger entries and order status are read-only here. Admin actions
that change them go through the services like every other caller.
"""

from django.contrib import admin
from django.contrib import messages
from django.utils.html import format_html

from .models import (
    Product, Review, Order, OrderItem, Wallet, WalletTransaction, Notification,
    Chat, Message
)
from .services import order_engine, wallet_ledger
from .services.utils import format_currency


# ==========================================
# INLINE ADMIN CLASSES
# ==========================================

class OrderItemInline(admin.TabularInline):
    """Snapshot of the cart, shown inside Order admin"""
    model = OrderItem
    extra = 0
    readonly_fields = ['product_id', 'title', 'price', 'quantity', 'image_url']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ReviewInline(admin.TabularInline):
    model = Review
    extra = 0
    readonly_fields = ['user', 'user_name', 'rating', 'comment', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


# ==========================================
# PRODUCTS ADMIN
# ==========================================

@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = [
        'title', 'vendor_name', 'category', 'price',
        'status_badge', 'university', 'average_rating', 'created_at'
    ]
    list_filter = ['status', 'category', 'university', 'created_at']
    search_fields = ['title', 'vendor__email', 'vendor__username']
    readonly_fields = [
        'id', 'status', 'sold_at', 'review_count', 'average_rating',
        'created_at', 'updated_at'
    ]

    fieldsets = (
        ('Product', {
            'fields': ('id', 'vendor', 'title', 'category', 'description', 'image_url')
        }),
        ('Selling', {
            'fields': ('price', 'delivery_methods', 'university')
        }),
        ('Availability (Read-only)', {
            'fields': ('status', 'sold_at')
        }),
        ('Ratings', {
            'fields': ('review_count', 'average_rating')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    inlines = [ReviewInline]

    def vendor_name(self, obj):
        return obj.vendor.get_full_name()
    vendor_name.short_description = 'Vendor'

    def status_badge(self, obj):
        color = '#16a34a' if obj.is_available else '#6b7280'
        return format_html('<span style="color: {};">{}</span>', color, obj.get_status_display())
    status_badge.short_description = 'Status'


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['product', 'user_name', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['product__title', 'user_name', 'comment']
    readonly_fields = ['product', 'user', 'user_name', 'rating', 'created_at']

    def has_add_permission(self, request):
        return False


# ==========================================
# ORDERS ADMIN
# ==========================================

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = [
        'order_id_short', 'buyer_name', 'vendor_name', 'rider_name',
        'status', 'payment_status', 'delivery_method', 'total_display', 'created_at'
    ]
    list_filter = ['status', 'payment_status', 'delivery_method', 'university', 'created_at']
    search_fields = ['id', 'buyer__email', 'vendor__email', 'rider__email', 'buyer_name']
    readonly_fields = [
        'id', 'buyer', 'buyer_name', 'vendor', 'rider',
        'subtotal', 'delivery_fee', 'total', 'status', 'payment_status',
        'delivery_method', 'delivery_address', 'university', 'cancellation_reason',
        'created_at', 'updated_at', 'accepted_at', 'paid_at', 'delivered_at', 'cancelled_at'
    ]

    fieldsets = (
        ('Order Details', {
            'fields': ('id', 'buyer', 'buyer_name', 'vendor', 'rider', 'status')
        }),
        ('Payment', {
            'fields': ('subtotal', 'delivery_fee', 'total', 'payment_status', 'paid_at')
        }),
        ('Fulfilment', {
            'fields': ('delivery_method', 'delivery_address', 'university')
        }),
        ('Cancellation', {
            'fields': ('cancellation_reason', 'cancelled_at')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at', 'accepted_at', 'delivered_at')
        }),
    )

    inlines = [OrderItemInline]
    actions = ['cancel_orders']

    def has_add_permission(self, request):
        return False

    def order_id_short(self, obj):
        return obj.short_id
    order_id_short.short_description = 'Order ID'

    def vendor_name(self, obj):
        return obj.vendor.get_full_name()
    vendor_name.short_description = 'Vendor'

    def rider_name(self, obj):
        return obj.rider.get_full_name() if obj.rider else '-'
    rider_name.short_description = 'Rider'

    def total_display(self, obj):
        return format_currency(obj.total)
    total_display.short_description = 'Total'

    def cancel_orders(self, request, queryset):
        """Cancel through the lifecycle engine so paid orders are refunded"""
        cancelled = 0
        for order in queryset:
            result = order_engine.cancel_order(order.pk, reason='Cancelled by admin')
            if result.success:
                cancelled += 1
            else:
                self.message_user(
                    request,
                    f'Order {order.short_id}: {result.message}',
                    messages.WARNING
                )
        self.message_user(request, f'✓ Cancelled {cancelled} order(s)', messages.SUCCESS)
    cancel_orders.short_description = 'Cancel selected orders (refunds paid ones)'


# ==========================================
# WALLET ADMIN
# ==========================================

@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ['user', 'balance_display', 'updated_at']
    search_fields = ['user__email', 'user__username']
    readonly_fields = ['user', 'balance', 'opening_balance', 'created_at', 'updated_at']
    actions = ['reconcile_wallets']

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def balance_display(self, obj):
        return format_currency(obj.balance)
    balance_display.short_description = 'Balance'

    def reconcile_wallets(self, request, queryset):
        """Replay each wallet's ledger and compare it with the stored balance"""
        mismatched = []
        for wallet in queryset:
            result = wallet_ledger.reconcile(wallet.pk)
            if result.success and not result.data['consistent']:
                mismatched.append(wallet.user.email)

        if mismatched:
            self.message_user(
                request,
                f'✗ Out of balance: {", ".join(mismatched)}',
                messages.ERROR
            )
        else:
            self.message_user(request, f'✓ {queryset.count()} wallet(s) reconcile', messages.SUCCESS)
    reconcile_wallets.short_description = 'Reconcile selected wallets'


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = [
        'transaction_id_short', 'user', 'transaction_type',
        'amount', 'balance_after', 'related_entity_type', 'created_at'
    ]
    list_filter = ['transaction_type', 'related_entity_type', 'created_at']
    search_fields = ['transaction_id', 'user__email', 'reference', 'related_entity_id']
    readonly_fields = [
        'transaction_id', 'wallet', 'user', 'transaction_type', 'amount',
        'description', 'reference', 'related_entity_type', 'related_entity_id',
        'balance_before', 'balance_after', 'created_at'
    ]

    def transaction_id_short(self, obj):
        return str(obj.transaction_id)[:8]
    transaction_id_short.short_description = 'Transaction ID'

    # Append-only ledger
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ==========================================
# NOTIFICATIONS ADMIN
# ==========================================

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'user', 'notification_type', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read', 'created_at']
    search_fields = ['title', 'message', 'user__email']
    readonly_fields = ['user', 'created_at', 'read_at']


# ==========================================
# CHAT ADMIN
# ==========================================

class MessageInline(admin.TabularInline):
    model = Message
    extra = 0
    readonly_fields = ['sender', 'text', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ['product_title', 'buyer', 'vendor', 'message_count', 'last_message_at']
    list_filter = ['created_at']
    search_fields = ['product_title', 'buyer__email', 'vendor__email']
    readonly_fields = [
        'id', 'product', 'buyer', 'vendor', 'product_title', 'product_image_url',
        'last_message_text', 'last_message_sender', 'last_message_at', 'created_at'
    ]

    inlines = [MessageInline]

    def has_add_permission(self, request):
        return False

    def message_count(self, obj):
        return obj.messages.count()
    message_count.short_description = 'Messages'
