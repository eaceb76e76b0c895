"""
Integration Tests for Direct Message Endpoints
Tests for: send, offline delivery, conversations, read marking, edit/delete ownership
"""
import pytest
from bson import ObjectId
from httpx import AsyncClient

from entreprenapp.models.message import MessageDocument


@pytest.mark.asyncio
async def test_send_to_offline_user_is_stored(client: AsyncClient, db, test_user, other_user, sio, auth_cookie):
    response = await client.post(
        f"/api/message/send/{other_user['_id']}",
        json={'text': 'Hello there'},
        headers=auth_cookie(test_user),
    )

    assert response.status_code == 201
    assert response.json()['data']['text'] == 'Hello there'
    assert await db.messages.count_documents({'receiver': other_user['_id']}) == 1
    assert await db.notifications.count_documents({'recipient': other_user['_id'], 'type': 'message'}) == 1
    assert sio.events('receive_message') == []


@pytest.mark.asyncio
async def test_send_to_online_user_is_pushed(
    client: AsyncClient, test_user, other_user, presence, sio, auth_cookie
):
    presence.connect(str(other_user['_id']), 'sid-receiver')
    presence.connect(str(test_user['_id']), 'sid-sender')

    await client.post(
        f"/api/message/send/{other_user['_id']}",
        json={'text': 'Are you free?'},
        headers=auth_cookie(test_user),
    )

    received = sio.events('receive_message')
    assert len(received) == 1
    assert received[0]['to'] == f"user:{other_user['_id']}"
    assert received[0]['data']['text'] == 'Are you free?'
    assert sio.events('message_sent')[0]['to'] == f"user:{test_user['_id']}"
    assert sio.events('new_notification')[0]['to'] == f"user:{other_user['_id']}"


@pytest.mark.asyncio
async def test_cannot_message_self(client: AsyncClient, test_user, auth_cookie):
    response = await client.post(
        f"/api/message/send/{test_user['_id']}",
        json={'text': 'Echo'},
        headers=auth_cookie(test_user),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_receiver(client: AsyncClient, test_user, auth_cookie):
    response = await client.post(
        f'/api/message/send/{ObjectId()}',
        json={'text': 'Anyone?'},
        headers=auth_cookie(test_user),
    )

    assert response.status_code == 404
    assert response.json()['message'] == 'Receiver not found'


@pytest.mark.asyncio
async def test_conversations_report_unread(client: AsyncClient, db, test_user, other_user, auth_cookie):
    await MessageDocument(sender=other_user['_id'], receiver=test_user['_id'], text='first').insert(db)
    await MessageDocument(sender=other_user['_id'], receiver=test_user['_id'], text='second').insert(db)
    await MessageDocument(sender=test_user['_id'], receiver=other_user['_id'], text='reply').insert(db)

    response = await client.get('/api/message/conversations', headers=auth_cookie(test_user))

    assert response.status_code == 200
    body = response.json()
    assert body['count'] == 1
    conversation = body['conversations'][0]
    assert conversation['unreadCount'] == 2
    assert conversation['participant']['username'] == other_user['username']


@pytest.mark.asyncio
async def test_reading_conversation_marks_messages_read(
    client: AsyncClient, db, test_user, other_user, auth_cookie
):
    await MessageDocument(sender=other_user['_id'], receiver=test_user['_id'], text='ping').insert(db)

    response = await client.get(f"/api/message/{other_user['_id']}", headers=auth_cookie(test_user))

    assert response.status_code == 200
    assert response.json()['count'] == 1
    assert await db.messages.count_documents({'read': False}) == 0


@pytest.mark.asyncio
async def test_only_sender_can_update(client: AsyncClient, db, test_user, other_user, auth_cookie):
    message = await MessageDocument(sender=test_user['_id'], receiver=other_user['_id'], text='draft').insert(db)

    denied = await client.put(
        f"/api/message/update/{message['_id']}",
        json={'text': 'tampered'},
        headers=auth_cookie(other_user),
    )
    allowed = await client.put(
        f"/api/message/update/{message['_id']}",
        json={'text': 'final'},
        headers=auth_cookie(test_user),
    )

    assert denied.status_code == 403
    assert denied.json()['message'] == 'You can only update your own messages'
    assert allowed.status_code == 200
    assert allowed.json()['data']['edited'] is True


@pytest.mark.asyncio
async def test_delete_message_notifies_both_sides(
    client: AsyncClient, db, test_user, other_user, presence, sio, auth_cookie
):
    presence.connect(str(other_user['_id']), 'sid-receiver')
    message = await MessageDocument(sender=test_user['_id'], receiver=other_user['_id'], text='oops').insert(db)

    response = await client.delete(f"/api/message/delete/{message['_id']}", headers=auth_cookie(test_user))

    assert response.status_code == 200
    assert await db.messages.count_documents({}) == 0
    deleted = sio.events('message_deleted')
    assert [e['to'] for e in deleted] == [f"user:{other_user['_id']}"]
