from django.urls import path
from . import views

app_name = 'marketplace'

urlpatterns = [
    # ==========================================
    # CHECKOUT & ORDERS
    # ==========================================
    path('checkout/', views.checkout, name='checkout'),
    path('orders/', views.orders_list, name='orders_list'),
    path('orders/<uuid:order_id>/', views.order_detail, name='order_detail'),
    path('orders/<uuid:order_id>/accept/', views.order_accept, name='order_accept'),
    path('orders/<uuid:order_id>/reject/', views.order_reject, name='order_reject'),
    path('orders/<uuid:order_id>/cancel/', views.order_cancel, name='order_cancel'),
    path('orders/<uuid:order_id>/confirm-pickup/', views.order_confirm_pickup, name='order_confirm_pickup'),

    # ==========================================
    # DELIVERIES
    # ==========================================
    path('deliveries/available/', views.available_deliveries, name='available_deliveries'),
    path('deliveries/<uuid:order_id>/accept/', views.delivery_accept, name='delivery_accept'),
    path('deliveries/<uuid:order_id>/picked-up/', views.delivery_picked_up, name='delivery_picked_up'),
    path('deliveries/<uuid:order_id>/delivered/', views.delivery_delivered, name='delivery_delivered'),

    # ==========================================
    # WALLET
    # ==========================================
    path('wallet/', views.wallet_overview, name='wallet_overview'),
    path('wallet/transactions/', views.wallet_transactions, name='wallet_transactions'),
    path('wallet/fund/', views.wallet_fund, name='wallet_fund'),

    # ==========================================
    # PRODUCTS
    # ==========================================
    path('products/create/', views.product_create, name='product_create'),
    path('products/<uuid:product_id>/availability/', views.product_availability, name='product_availability'),
    path('products/<uuid:product_id>/reviews/', views.review_submit, name='review_submit'),
    path('products/<uuid:product_id>/chat/', views.chat_start, name='chat_start'),

    # ==========================================
    # NOTIFICATIONS
    # ==========================================
    path('notifications/', views.notifications_list, name='notifications_list'),
    path('notifications/<int:notification_id>/read/', views.notification_read, name='notification_read'),

    # ==========================================
    # CHAT
    # ==========================================
    path('chats/', views.chats_list, name='chats_list'),
    path('chats/<uuid:chat_id>/', views.chat_detail, name='chat_detail'),
    path('chats/<uuid:chat_id>/messages/', views.chat_send, name='chat_send'),
]
