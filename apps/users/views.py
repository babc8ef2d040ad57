"""
Views for Univend account profiles.
Location: apps/users/views.py

Signup and login are handled by Django's auth; these JSON endpoints let a
signed-in user maintain their profile and register a device for push.
"""

import json
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .forms import FcmTokenForm, ProfileForm
from .models import CustomUser

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('first_name', 'last_name', 'address', 'phone')


def _payload(request):
    """JSON body when the client sent one, form data otherwise"""
    if request.content_type == 'application/json':
        try:
            body = json.loads(request.body or b'{}')
        except ValueError:
            return None
        return body if isinstance(body, dict) else None
    return request.POST


def _profile_json(user):
    return {
        'id': user.pk,
        'email': user.email,
        'display_name': user.get_full_name(),
        'role': user.role,
        'university': user.university,
        'address': user.address,
        'phone': user.phone,
        'push_enabled': bool(user.fcm_token),
    }


def _invalid(form=None, message='Request body must be a JSON object.'):
    body = {'success': False, 'error': 'ValidationError', 'message': message}
    if form is not None:
        body['errors'] = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        body['message'] = next(iter(body['errors'].values()))[0]
    return JsonResponse(body, status=400)


# ==========================================
# PROFILE
# ==========================================

@login_required
@require_GET
def profile_detail(request):
    return JsonResponse({'success': True, 'data': _profile_json(request.user)})


@login_required
@require_POST
def profile_update(request):
    """
    Partial update: fields left out of the body keep their current value
    """
    data = _payload(request)
    if data is None:
        return _invalid()

    user = request.user
    first_name, _, last_name = user.username.partition(' ')
    current = {
        'first_name': first_name,
        'last_name': last_name,
        'address': user.address,
        'phone': user.phone,
    }

    form = ProfileForm({f: data.get(f, current[f]) for f in PROFILE_FIELDS}, instance=user)
    if not form.is_valid():
        return _invalid(form)

    user = form.save()
    logger.info(f'✅ Profile updated for {user.email}')

    return JsonResponse({'success': True, 'data': _profile_json(user)})


# ==========================================
# PUSH NOTIFICATIONS
# ==========================================

@login_required
@require_POST
def save_fcm_token(request):
    """
    Register this device for push. A device token belongs to one account,
    so it is taken off any other account that had it.
    """
    data = _payload(request)
    if data is None:
        return _invalid()

    form = FcmTokenForm(data)
    if not form.is_valid():
        return _invalid(form)

    token = form.cleaned_data['token']
    CustomUser.objects.filter(fcm_token=token).exclude(pk=request.user.pk).update(fcm_token='')
    CustomUser.objects.filter(pk=request.user.pk).update(fcm_token=token)

    logger.info(f'Push token saved for {request.user.email}')

    return JsonResponse({'success': True})
