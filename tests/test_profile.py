import json

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse


def post_json(client, url, body):
    return client.post(url, data=json.dumps(body), content_type='application/json')


@pytest.fixture
def signed_in(client, buyer):
    client.force_login(buyer)
    return client


def test_profile_detail(signed_in, buyer):
    data = signed_in.get(reverse('users:profile_detail')).json()['data']

    assert data['email'] == buyer.email
    assert data['display_name'] == 'Ada'
    assert data['address'] == 'Hall 3, Room 12'
    assert data['push_enabled'] is False


def test_profile_update_rebuilds_display_name(signed_in, buyer):
    response = post_json(signed_in, reverse('users:profile_update'), {
        'first_name': 'ADA',
        'last_name': 'obi',
        'phone': '0803 123 4567',
    })

    assert response.status_code == 200
    buyer.refresh_from_db()
    assert buyer.username == 'Ada Obi'
    assert buyer.phone == '08031234567'
    # Left out of the body, so unchanged
    assert buyer.address == 'Hall 3, Room 12'


def test_profile_update_validates_names_and_phone(signed_in, buyer):
    response = post_json(signed_in, reverse('users:profile_update'), {
        'first_name': 'A',
        'last_name': 'Obi',
        'phone': 'call me',
    })

    assert response.status_code == 400
    assert set(response.json()['errors']) == {'first_name', 'phone'}
    buyer.refresh_from_db()
    assert buyer.username == 'Ada'


def test_profile_requires_login(client, db):
    response = client.get(reverse('users:profile_detail'))

    assert response.status_code == 302


def test_save_fcm_token_moves_device_to_current_account(signed_in, buyer, other_buyer):
    other_buyer.fcm_token = 'shared-device'
    other_buyer.save(update_fields=['fcm_token'])

    response = post_json(signed_in, reverse('users:save_fcm_token'), {'token': 'shared-device'})

    assert response.status_code == 200
    User = get_user_model()
    assert User.objects.get(pk=buyer.pk).fcm_token == 'shared-device'
    assert User.objects.get(pk=other_buyer.pk).fcm_token == ''


def test_save_fcm_token_requires_token(signed_in):
    response = post_json(signed_in, reverse('users:save_fcm_token'), {'token': '  '})

    assert response.status_code == 400
