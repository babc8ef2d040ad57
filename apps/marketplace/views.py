"""
Marketplace App Views
JSON endpoints for checkout, the order lifecycle, wallets, products,
reviews, notifications and chat.

Views authenticate and authorize (see decorators) and then hand over to
the services; every order or wallet change goes through them.
"""

import json
import logging

from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from .decorators import (
    role_required, vendor_owns_order, rider_assigned,
    order_party_required, chat_participant_required
)
from .forms import (
    CancelOrderForm, CheckoutForm, FundWalletForm, MessageForm, ProductForm, ReviewForm
)
from .models import Notification, Product, PICKUP
from .services import (
    availability_gate, chat_service, order_engine, review_service, wallet_ledger,
    CartLine, ErrorKind, Identity, ServiceResult
)

logger = logging.getLogger(__name__)

HTTP_STATUS = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.PRODUCT_NO_LONGER_AVAILABLE: 409,
    ErrorKind.INSUFFICIENT_FUNDS: 402,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.TRANSITION_FAILED: 503,
}


# ==========================================
# SERIALIZERS
# ==========================================

def _payload(request):
    """JSON body when the client sent one, form data otherwise"""
    if request.content_type == 'application/json':
        try:
            body = json.loads(request.body or b'{}')
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
    return request.POST


def _order_json(order):
    return {
        'id': str(order.pk),
        'short_id': order.short_id,
        'status': order.status,
        'payment_status': order.payment_status,
        'delivery_method': order.delivery_method,
        'delivery_address': order.delivery_address,
        'university': order.university,
        'buyer_id': order.buyer_id,
        'buyer_name': order.buyer_name,
        'vendor_id': order.vendor_id,
        'rider_id': order.rider_id,
        'subtotal': order.subtotal,
        'delivery_fee': order.delivery_fee,
        'total': order.total,
        'items': [
            {
                'product_id': str(item.product_id),
                'title': item.title,
                'price': item.price,
                'quantity': item.quantity,
                'image_url': item.image_url,
            }
            for item in order.items.all()
        ],
        'created_at': order.created_at.isoformat() if order.created_at else None,
        'updated_at': order.updated_at.isoformat() if order.updated_at else None,
    }


def _transaction_json(entry):
    return {
        'id': str(entry.transaction_id),
        'type': entry.transaction_type,
        'amount': entry.amount,
        'signed_amount': entry.signed_amount,
        'description': entry.description,
        'reference': entry.reference,
        'related_entity_type': entry.related_entity_type,
        'related_entity_id': entry.related_entity_id,
        'balance_before': entry.balance_before,
        'balance_after': entry.balance_after,
        'created_at': entry.created_at.isoformat(),
    }


def _product_json(product):
    return {
        'id': str(product.pk),
        'title': product.title,
        'category': product.category,
        'price': product.price,
        'status': product.status,
        'delivery_methods': product.delivery_methods,
        'university': product.university,
        'review_count': product.review_count,
        'average_rating': round(product.average_rating, 2),
    }


def _result_response(result: ServiceResult, data=None, status=200):
    """Render a ServiceResult as {success, error?, message?, data?}"""
    payload = result.to_dict()
    if not result.success:
        return JsonResponse(payload, status=HTTP_STATUS.get(result.error, 400))
    if data is not None:
        payload['data'] = data
    return JsonResponse(payload, status=status)


def _order_response(result: ServiceResult, status=200):
    data = _order_json(result.data['order']) if result.success else None
    return _result_response(result, data, status=status)


def _form_error(form):
    errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
    first = next(iter(errors.values()), ['The request is not valid.'])[0]
    return JsonResponse({
        'success': False,
        'error': ErrorKind.VALIDATION_ERROR.value,
        'message': first,
        'errors': errors,
    }, status=400)


def _bad_body():
    return JsonResponse({
        'success': False,
        'error': ErrorKind.VALIDATION_ERROR.value,
        'message': 'Request body must be a JSON object.',
    }, status=400)


# ==========================================
# CHECKOUT
# ==========================================

@role_required('buyer')
@require_POST
def checkout(request):
    """
    Place an order from the buyer's cart. Nothing is charged until the
    vendor accepts.
    """
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = CheckoutForm(data)
    if not form.is_valid():
        return _form_error(form)

    lines = form.cleaned_data['items']
    products = {
        str(p.pk): p
        for p in Product.objects.filter(pk__in=[pid for pid, _ in lines])
    }
    missing = [pid for pid, _ in lines if pid not in products]
    if missing:
        return _result_response(ServiceResult.fail(ErrorKind.NOT_FOUND, 'Product not found.'))

    cart = [CartLine(product=products[pid], quantity=qty) for pid, qty in lines]

    result = order_engine.place_order(
        cart,
        Identity.from_user(request.user),
        form.cleaned_data['delivery_method'],
    )
    return _order_response(result, status=201)


# ==========================================
# ORDER VIEWS
# ==========================================

@login_required
@require_GET
def orders_list(request):
    """
    The caller's orders, seen from their role
    """
    user = request.user
    status = request.GET.get('status', '')

    if user.is_vendor:
        orders = order_engine.orders_for_vendor(user.pk, status=status or None)
    elif user.is_rider:
        orders = order_engine.deliveries_for_rider(user.pk)
    else:
        orders = order_engine.orders_for_buyer(user.pk)

    paginator = Paginator(orders.order_by('-created_at'), 20)
    page_obj = paginator.get_page(request.GET.get('page'))

    return JsonResponse({
        'success': True,
        'data': {
            'orders': [_order_json(order) for order in page_obj],
            'page': page_obj.number,
            'num_pages': paginator.num_pages,
            'count': paginator.count,
        }
    })


@order_party_required
@require_GET
def order_detail(request, order_id):
    return _order_response(order_engine.get_order(order_id))


@role_required('vendor')
@vendor_owns_order
@require_POST
def order_accept(request, order_id):
    """
    Vendor accepts: the buyer is charged and the items are marked sold
    """
    return _order_response(order_engine.accept_order(order_id))


@role_required('vendor')
@vendor_owns_order
@require_POST
def order_reject(request, order_id):
    return _order_response(order_engine.reject_order(order_id))


@order_party_required
@require_POST
def order_cancel(request, order_id):
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = CancelOrderForm(data)
    if not form.is_valid():
        return _form_error(form)

    return _order_response(order_engine.cancel_order(order_id, form.cleaned_data['reason']))


@order_party_required
@require_POST
def order_confirm_pickup(request, order_id):
    """
    Buyer or vendor confirms the pickup handoff; this settles the order
    """
    if request.order.delivery_method != PICKUP:
        return _result_response(ServiceResult.fail(
            ErrorKind.INVALID_STATE,
            'Delivery orders are completed by their rider.'
        ))
    return _order_response(order_engine.mark_delivered(order_id))


# ==========================================
# RIDER VIEWS
# ==========================================

@role_required('rider')
@require_GET
def available_deliveries(request):
    """
    Unclaimed paid delivery orders on the rider's campus
    """
    orders = order_engine.available_deliveries(request.user.university)
    return JsonResponse({
        'success': True,
        'data': {'orders': [_order_json(order) for order in orders]}
    })


@role_required('rider')
@require_POST
def delivery_accept(request, order_id):
    """
    First rider to claim gets it; everyone else gets a 409
    """
    return _order_response(order_engine.accept_delivery(order_id, request.user.pk))


@role_required('rider')
@rider_assigned
@require_POST
def delivery_picked_up(request, order_id):
    return _order_response(order_engine.mark_picked_up(order_id))


@role_required('rider')
@rider_assigned
@require_POST
def delivery_delivered(request, order_id):
    return _order_response(order_engine.mark_delivered(order_id))


# ==========================================
# WALLET VIEWS
# ==========================================

@login_required
@require_GET
def wallet_overview(request):
    """
    Balance and the ten most recent transactions
    """
    wallet = wallet_ledger.get_or_create_wallet(request.user.pk)
    transactions = wallet_ledger.list_transactions(request.user.pk, limit=10)

    return JsonResponse({
        'success': True,
        'data': {
            'balance': wallet.balance,
            'transactions': [_transaction_json(t) for t in transactions],
        }
    })


@login_required
@require_GET
def wallet_transactions(request):
    """
    Full transaction history
    """
    paginator = Paginator(wallet_ledger.transactions_queryset(request.user.pk), 50)
    page_obj = paginator.get_page(request.GET.get('page'))

    return JsonResponse({
        'success': True,
        'data': {
            'transactions': [_transaction_json(t) for t in page_obj],
            'page': page_obj.number,
            'num_pages': paginator.num_pages,
            'count': paginator.count,
        }
    })


@login_required
@require_POST
def wallet_fund(request):
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = FundWalletForm(data)
    if not form.is_valid():
        return _form_error(form)

    result = wallet_ledger.fund_wallet(request.user.pk, form.cleaned_data['amount'])
    data = None
    if result.success:
        data = {
            'balance': result.data['balance'],
            'transaction': _transaction_json(result.data['transaction']),
        }
    return _result_response(result, data)


# ==========================================
# PRODUCTS
# ==========================================

@role_required('vendor')
@require_POST
def product_create(request):
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = ProductForm(data, vendor=request.user)
    if not form.is_valid():
        return _form_error(form)

    product = form.save()
    logger.info(f'Product {product.pk} listed by {request.user.email}')

    return JsonResponse({'success': True, 'data': _product_json(product)}, status=201)


@require_GET
def product_availability(request, product_id):
    return JsonResponse({
        'success': True,
        'data': {
            'product_id': str(product_id),
            'available': availability_gate.is_available(product_id),
        }
    })


@login_required
@require_POST
def review_submit(request, product_id):
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = ReviewForm(data)
    if not form.is_valid():
        return _form_error(form)

    result = review_service.submit_review(
        product_id,
        Identity.from_user(request.user),
        form.cleaned_data['rating'],
        form.cleaned_data['comment'],
    )
    product_data = _product_json(result.data['product']) if result.success else None
    return _result_response(result, product_data, status=201)


# ==========================================
# NOTIFICATIONS
# ==========================================

@login_required
@require_GET
def notifications_list(request):
    """
    List notifications, newest first, and mark the page as read
    """
    notifications = Notification.objects.filter(user=request.user).order_by('-created_at')

    paginator = Paginator(notifications, 20)
    page_obj = paginator.get_page(request.GET.get('page'))

    data = [
        {
            'id': n.pk,
            'type': n.notification_type,
            'title': n.title,
            'message': n.message,
            'link': n.link,
            'is_read': n.is_read,
            'created_at': n.created_at.isoformat(),
        }
        for n in page_obj
    ]

    # Mark as read
    Notification.objects.filter(
        pk__in=[n['id'] for n in data], is_read=False
    ).update(is_read=True, read_at=timezone.now())

    return JsonResponse({
        'success': True,
        'data': {
            'notifications': data,
            'unread': notifications.filter(is_read=False).count(),
        }
    })


@login_required
@require_POST
def notification_read(request, notification_id):
    notification = get_object_or_404(Notification, id=notification_id, user=request.user)
    notification.mark_read()
    return JsonResponse({'success': True})


# ==========================================
# CHAT
# ==========================================

def _chat_json(chat, user_id):
    other = chat.vendor if user_id == chat.buyer_id else chat.buyer
    return {
        'id': str(chat.pk),
        'product_id': str(chat.product_id),
        'product_title': chat.product_title,
        'product_image_url': chat.product_image_url,
        'buyer_id': chat.buyer_id,
        'vendor_id': chat.vendor_id,
        'other_party': other.get_full_name(),
        'last_message': {
            'text': chat.last_message_text,
            'sender_id': chat.last_message_sender_id,
            'created_at': chat.last_message_at.isoformat(),
        } if chat.last_message_at else None,
        'created_at': chat.created_at.isoformat(),
    }


def _message_json(message):
    return {
        'id': message.pk,
        'sender_id': message.sender_id,
        'text': message.text,
        'created_at': message.created_at.isoformat(),
    }


@login_required
@require_POST
def chat_start(request, product_id):
    """
    Open the caller's chat with the product's vendor (or return the
    existing one)
    """
    result = chat_service.get_or_create_chat(product_id, Identity.from_user(request.user))
    if not result.success:
        return _result_response(result)

    status = 201 if result.data['created'] else 200
    return _result_response(result, _chat_json(result.data['chat'], request.user.pk), status=status)


@login_required
@require_GET
def chats_list(request):
    chats = chat_service.chats_for_user(request.user.pk)
    return JsonResponse({
        'success': True,
        'data': {'chats': [_chat_json(chat, request.user.pk) for chat in chats]}
    })


@chat_participant_required
@require_GET
def chat_detail(request, chat_id):
    """
    The chat and its messages, oldest first, 50 per page
    """
    paginator = Paginator(chat_service.messages_for_chat(chat_id), 50)
    page_obj = paginator.get_page(request.GET.get('page'))

    return JsonResponse({
        'success': True,
        'data': {
            'chat': _chat_json(request.chat, request.user.pk),
            'messages': [_message_json(m) for m in page_obj],
            'page': page_obj.number,
            'num_pages': paginator.num_pages,
        }
    })


@chat_participant_required
@require_POST
def chat_send(request, chat_id):
    data = _payload(request)
    if data is None:
        return _bad_body()

    form = MessageForm(data)
    if not form.is_valid():
        return _form_error(form)

    result = chat_service.send_message(chat_id, Identity.from_user(request.user), form.cleaned_data['text'])
    message = _message_json(result.data['message']) if result.success else None
    return _result_response(result, message, status=201)
