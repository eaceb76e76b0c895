"""
Tests for Notifications
Tests for: notification service, unread count, read/delete endpoints
"""
import pytest
from bson import ObjectId
from httpx import AsyncClient

from entreprenapp.models.notification import NotificationDocument, NotificationType
from entreprenapp.services.notifications import NotificationService


async def notify(db, recipient, **fields) -> dict:
    data = {'type': NotificationType.LIKE, 'title': 'Like', 'content': 'Someone liked your post'}
    data.update(fields)
    return await NotificationDocument(recipient=recipient, **data).insert(db)


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_self_notification_skipped(self, db, publisher, test_user):
        service = NotificationService(db, publisher)

        result = await service.notify_post_liked(test_user['_id'], test_user['_id'], ObjectId())

        assert result is None
        assert await db.notifications.count_documents({}) == 0

    @pytest.mark.asyncio
    async def test_record_and_push_with_actor(self, db, publisher, presence, sio, test_user, other_user):
        presence.connect(str(other_user['_id']), 'sid-1')
        service = NotificationService(db, publisher)

        notification = await service.notify_friend_request(test_user['_id'], other_user['_id'])

        assert notification['read'] is False
        assert notification['expires_at'] > notification['created_at']
        pushed = sio.events('new_notification')[0]
        assert pushed['to'] == f"user:{other_user['_id']}"
        assert pushed['data']['actor']['username'] == test_user['username']
        assert pushed['data']['type'] == 'friend_request'

    @pytest.mark.asyncio
    async def test_send_many_skips_actor(self, db, publisher, test_user, other_user):
        service = NotificationService(db, publisher)

        created = await service.notify_new_event(
            test_user['_id'], [test_user['_id'], other_user['_id']], ObjectId(), 'Demo day'
        )

        assert len(created) == 1
        assert created[0]['content'] == 'Un nouvel événement "Demo day" a été créé'

    @pytest.mark.asyncio
    async def test_long_excerpt_truncated(self, db, publisher, test_user, other_user):
        service = NotificationService(db, publisher)

        notification = await service.notify_message_received(test_user['_id'], other_user['_id'], 'x' * 300)

        assert len(notification['content']) == 100


class TestNotificationEndpoints:

    @pytest.mark.asyncio
    async def test_unread_count(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        await notify(db, test_user['_id'])
        await notify(db, test_user['_id'], read=True)
        await notify(db, other_user['_id'])

        response = await client.get('/api/notification/unread/count', headers=auth_cookie(test_user))

        assert response.status_code == 200
        assert response.json()['data'] == {'count': 1}

    @pytest.mark.asyncio
    async def test_list_is_scoped_and_populated(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        await notify(db, test_user['_id'], actor=other_user['_id'])
        await notify(db, other_user['_id'])

        response = await client.get('/api/notification/', headers=auth_cookie(test_user))

        body = response.json()
        assert body['count'] == 1
        assert body['data'][0]['actor']['username'] == other_user['username']

    @pytest.mark.asyncio
    async def test_mark_read_and_read_all(self, client: AsyncClient, db, test_user, auth_cookie):
        first = await notify(db, test_user['_id'])
        await notify(db, test_user['_id'])
        headers = auth_cookie(test_user)

        single = await client.put(f"/api/notification/{first['_id']}/read", headers=headers)
        everything = await client.put('/api/notification/read/all', headers=headers)

        assert single.json()['data']['read'] is True
        assert everything.json()['data'] == {'modified': 1}
        assert await db.notifications.count_documents({'read': False}) == 0

    @pytest.mark.asyncio
    async def test_cannot_touch_foreign_notification(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        foreign = await notify(db, other_user['_id'])

        response = await client.delete(f"/api/notification/{foreign['_id']}", headers=auth_cookie(test_user))

        assert response.status_code == 404
        assert response.json()['message'] == 'Notification non trouvée'
        assert await db.notifications.count_documents({}) == 1

    @pytest.mark.asyncio
    async def test_delete_all(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        await notify(db, test_user['_id'])
        await notify(db, test_user['_id'])
        await notify(db, other_user['_id'])

        response = await client.delete('/api/notification/all', headers=auth_cookie(test_user))

        assert response.json()['data'] == {'deleted': 2}
        assert await db.notifications.count_documents({}) == 1
