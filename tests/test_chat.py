import json

import pytest
from django.urls import reverse

from apps.marketplace.models import Chat, Message
from apps.marketplace.services import ChatService, ErrorKind, Identity, notification_service


@pytest.fixture
def chats(db):
    return ChatService()


@pytest.fixture
def open_chat(chats, buyer, make_product):
    def _open_chat(product=None, user=None):
        result = chats.get_or_create_chat((product or make_product()).pk, Identity.from_user(user or buyer))
        assert result.success, result.message
        return result.data['chat']
    return _open_chat


def test_chat_is_opened_once_per_product_and_buyer(chats, buyer, vendor, make_product):
    jacket = make_product(image_url='https://img.example.test/jacket.jpg')

    first = chats.get_or_create_chat(jacket.pk, Identity.from_user(buyer))
    again = chats.get_or_create_chat(jacket.pk, Identity.from_user(buyer))

    assert first.data['created'] is True
    assert again.data['created'] is False
    assert again.data['chat'].pk == first.data['chat'].pk
    chat = first.data['chat']
    assert chat.vendor_id == vendor.pk
    assert chat.product_title == 'Denim jacket'
    assert chat.product_image_url == 'https://img.example.test/jacket.jpg'


def test_vendor_cannot_chat_about_own_product(chats, vendor, make_product):
    result = chats.get_or_create_chat(make_product().pk, Identity.from_user(vendor))

    assert result.error == ErrorKind.VALIDATION_ERROR
    assert result.message == 'You cannot start a chat for your own product.'
    assert Chat.objects.count() == 0


def test_chat_for_unknown_product_is_not_found(chats, buyer):
    result = chats.get_or_create_chat('00000000-0000-0000-0000-000000000000', Identity.from_user(buyer))

    assert result.error == ErrorKind.NOT_FOUND


def test_send_message_updates_preview(chats, open_chat, buyer, vendor):
    chat = open_chat()

    chats.send_message(chat.pk, Identity.from_user(buyer), '  Is it still available?  ')
    result = chats.send_message(chat.pk, Identity.from_user(vendor), 'Yes, come get it')

    assert result.success
    assert [m.text for m in chats.messages_for_chat(chat.pk)] == ['Is it still available?', 'Yes, come get it']
    chat.refresh_from_db()
    assert chat.last_message_text == 'Yes, come get it'
    assert chat.last_message_sender_id == vendor.pk
    assert chat.last_message_at == result.data['message'].created_at


@pytest.mark.parametrize('text', ['', '   ', 'x' * 1001])
def test_message_length_is_validated(chats, open_chat, buyer, text):
    chat = open_chat()

    result = chats.send_message(chat.pk, Identity.from_user(buyer), text)

    assert result.error == ErrorKind.VALIDATION_ERROR
    assert Message.objects.count() == 0


def test_outsider_cannot_post(chats, open_chat, other_buyer):
    chat = open_chat()

    result = chats.send_message(chat.pk, Identity.from_user(other_buyer), 'Hello?')

    assert result.error == ErrorKind.NOT_FOUND
    assert Message.objects.count() == 0


def test_recipient_gets_push_after_commit(
    django_capture_on_commit_callbacks, monkeypatch, chats, open_chat, buyer, vendor
):
    pushes = []
    monkeypatch.setattr(
        notification_service.push, 'send_push',
        lambda token, title, body, data=None: pushes.append((token, title, body)) or True
    )
    vendor.fcm_token = 'vendor-device'
    vendor.save(update_fields=['fcm_token'])
    chat = open_chat()

    with django_capture_on_commit_callbacks(execute=True):
        chats.send_message(chat.pk, Identity.from_user(buyer), 'Can you do 5000?')

    assert pushes == [('vendor-device', 'New message from Ada', 'Can you do 5000?')]


def test_chats_for_user_lists_both_sides_newest_first(chats, open_chat, buyer, vendor, make_product):
    older = open_chat(make_product('Lamp'))
    newer = open_chat(make_product('Kettle'))
    chats.send_message(older.pk, Identity.from_user(buyer), 'First')
    chats.send_message(newer.pk, Identity.from_user(buyer), 'Second')

    assert [c.pk for c in chats.chats_for_user(buyer.pk)] == [newer.pk, older.pk]
    assert [c.pk for c in chats.chats_for_user(vendor.pk)] == [newer.pk, older.pk]


# ==========================================
# VIEWS
# ==========================================

def test_chat_views_flow(client, buyer, vendor, make_product):
    jacket = make_product()
    client.force_login(buyer)

    started = client.post(reverse('marketplace:chat_start', args=[jacket.pk]))
    assert started.status_code == 201
    chat_id = started.json()['data']['id']
    assert started.json()['data']['other_party'] == "Chioma's Thrift"

    reopened = client.post(reverse('marketplace:chat_start', args=[jacket.pk]))
    assert reopened.status_code == 200
    assert reopened.json()['data']['id'] == chat_id

    sent = client.post(
        reverse('marketplace:chat_send', args=[chat_id]),
        data=json.dumps({'text': 'Still available?'}),
        content_type='application/json',
    )
    assert sent.status_code == 201
    assert sent.json()['data']['sender_id'] == buyer.pk

    client.force_login(vendor)
    listing = client.get(reverse('marketplace:chats_list')).json()['data']['chats']
    assert listing[0]['last_message']['text'] == 'Still available?'
    assert listing[0]['other_party'] == 'Ada'

    detail = client.get(reverse('marketplace:chat_detail', args=[chat_id])).json()['data']
    assert [m['text'] for m in detail['messages']] == ['Still available?']


def test_chat_is_hidden_from_outsiders(client, open_chat, other_buyer):
    chat = open_chat()
    client.force_login(other_buyer)

    assert client.get(reverse('marketplace:chat_detail', args=[chat.pk])).status_code == 404
    assert client.post(
        reverse('marketplace:chat_send', args=[chat.pk]),
        data=json.dumps({'text': 'Hi'}),
        content_type='application/json',
    ).status_code == 404


def test_empty_message_is_rejected_by_view(client, open_chat, buyer):
    chat = open_chat()
    client.force_login(buyer)

    response = client.post(
        reverse('marketplace:chat_send', args=[chat.pk]),
        data=json.dumps({'text': ''}),
        content_type='application/json',
    )

    assert response.status_code == 400
    assert response.json()['error'] == 'ValidationError'
