"""
Marketplace App Decorators
Access control decorators for the marketplace JSON views.

The services trust whatever identity they are given, so every check that a
caller may act on an order lives here.
"""

from functools import wraps

from django.core.exceptions import ValidationError
from django.http import JsonResponse


def _deny(error, status):
    return JsonResponse({'success': False, 'error': error}, status=status)


# ==========================================
# ROLE DECORATORS
# ==========================================

def role_required(*roles):
    """
    Decorator for views that require an authenticated user with one of
    the given roles. Returns JSON errors instead of redirects.

    Usage:
        @role_required('vendor')
        def product_create(request):
            ...

        @role_required('vendor', 'buyer')
        def order_detail(request, order_id):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if not request.user.is_authenticated:
                return _deny('Authentication required', 401)

            if roles and request.user.role not in roles:
                return _deny(f'Only {" or ".join(roles)} accounts can do this', 403)

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator


# ==========================================
# ORDER OWNERSHIP DECORATORS
# ==========================================

def _order_guard(field_name, denial):
    """
    Build a decorator that loads the order named by the 'order_id' URL
    kwarg and checks that request.user is its `field_name` party.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            from .models import Order

            if not request.user.is_authenticated:
                return _deny('Authentication required', 401)

            try:
                order = Order.objects.get(pk=kwargs.get('order_id'))
            except (Order.DoesNotExist, ValueError, ValidationError):
                return _deny('Order not found', 404)

            if getattr(order, f'{field_name}_id') != request.user.pk:
                return _deny(denial, 403)

            # Add order to request
            request.order = order

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator


# Each expects 'order_id' in URL kwargs and sets request.order
vendor_owns_order = _order_guard('vendor', 'You do not have permission to access this order.')

rider_assigned = _order_guard('rider', 'You are not the rider assigned to this order.')


def order_party_required(view_func):
    """
    Buyer or vendor of the order (order detail, cancellation and the
    pickup handoff)
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        from .models import Order

        if not request.user.is_authenticated:
            return _deny('Authentication required', 401)

        try:
            order = Order.objects.get(pk=kwargs.get('order_id'))
        except (Order.DoesNotExist, ValueError, ValidationError):
            return _deny('Order not found', 404)

        if request.user.pk not in (order.buyer_id, order.vendor_id):
            return _deny('You do not have permission to access this order.', 403)

        request.order = order

        return view_func(request, *args, **kwargs)

    return wrapper


# ==========================================
# CHAT DECORATORS
# ==========================================

def chat_participant_required(view_func):
    """
    Buyer or vendor of the chat named by the 'chat_id' URL kwarg.
    Sets request.chat.
    """
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        from .models import Chat

        if not request.user.is_authenticated:
            return _deny('Authentication required', 401)

        try:
            chat = Chat.objects.get(pk=kwargs.get('chat_id'))
        except (Chat.DoesNotExist, ValueError, ValidationError):
            return _deny('Chat not found', 404)

        if request.user.pk not in chat.participant_ids:
            return _deny('Chat not found', 404)

        request.chat = chat

        return view_func(request, *args, **kwargs)

    return wrapper
