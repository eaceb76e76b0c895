"""
Integration Tests for Friends and Suggestions
Tests for: request lifecycle, friend lists, removal, suggestions, profile pages
"""
import pytest
from httpx import AsyncClient

from entreprenapp.models.friend import FriendRequestDocument
from entreprenapp.models.post import PostDocument


async def send_request(client, sender, receiver, auth_cookie):
    return await client.post(
        '/api/friend/invitation',
        json={'receiverId': str(receiver['_id'])},
        headers=auth_cookie(sender),
    )


class TestFriendRequests:

    @pytest.mark.asyncio
    async def test_send_request_notifies_receiver(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        response = await send_request(client, test_user, other_user, auth_cookie)

        assert response.status_code == 201
        assert response.json()['data']['status'] == 'pending'
        assert await db.notifications.count_documents(
            {'recipient': other_user['_id'], 'type': 'friend_request'}
        ) == 1

    @pytest.mark.asyncio
    async def test_duplicate_request_either_direction(self, client: AsyncClient, test_user, other_user, auth_cookie):
        await send_request(client, test_user, other_user, auth_cookie)

        response = await send_request(client, other_user, test_user, auth_cookie)

        assert response.status_code == 400
        assert response.json()['message'] == 'Request already sent'

    @pytest.mark.asyncio
    async def test_cannot_befriend_self(self, client: AsyncClient, test_user, auth_cookie):
        response = await send_request(client, test_user, test_user, auth_cookie)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_accept_links_both_users(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        sent = await send_request(client, test_user, other_user, auth_cookie)
        request_id = sent.json()['data']['_id']

        response = await client.post(
            f'/api/friend/invitation/{request_id}',
            json={'action': 'accept'},
            headers=auth_cookie(other_user),
        )

        assert response.status_code == 200
        assert response.json()['data']['status'] == 'accepted'
        sender = await db.users.find_one({'_id': test_user['_id']})
        receiver = await db.users.find_one({'_id': other_user['_id']})
        assert sender['friends'] == [other_user['_id']]
        assert receiver['friends'] == [test_user['_id']]

        friends = await client.get('/api/friend/', headers=auth_cookie(test_user))
        assert friends.json()['data'][0]['username'] == other_user['username']

    @pytest.mark.asyncio
    async def test_only_receiver_can_respond(self, client: AsyncClient, test_user, other_user, auth_cookie):
        sent = await send_request(client, test_user, other_user, auth_cookie)

        response = await client.post(
            f"/api/friend/invitation/{sent.json()['data']['_id']}",
            json={'action': 'accept'},
            headers=auth_cookie(test_user),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_request_is_answered_once(self, client: AsyncClient, test_user, other_user, auth_cookie):
        sent = await send_request(client, test_user, other_user, auth_cookie)
        url = f"/api/friend/invitation/{sent.json()['data']['_id']}"

        await client.post(url, json={'action': 'reject'}, headers=auth_cookie(other_user))
        response = await client.post(url, json={'action': 'accept'}, headers=auth_cookie(other_user))

        assert response.status_code == 400
        assert response.json()['message'] == 'Request already handled'

    @pytest.mark.asyncio
    async def test_invalid_action_rejected(self, client: AsyncClient, test_user, other_user, auth_cookie):
        sent = await send_request(client, test_user, other_user, auth_cookie)

        response = await client.post(
            f"/api/friend/invitation/{sent.json()['data']['_id']}",
            json={'action': 'maybe'},
            headers=auth_cookie(other_user),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pending_and_all_users(self, client: AsyncClient, test_user, other_user, auth_cookie):
        await send_request(client, test_user, other_user, auth_cookie)

        pending = await client.get('/api/friend/pending', headers=auth_cookie(other_user))
        everyone = await client.get('/api/friend/all', headers=auth_cookie(test_user))

        assert pending.json()['data'][0]['sender']['username'] == test_user['username']
        entry = everyone.json()['data'][0]
        assert entry['friendshipStatus'] == 'pending'
        assert entry['requestSentByMe'] is True

    @pytest.mark.asyncio
    async def test_remove_friend_allows_new_request(self, client: AsyncClient, db, test_user, other_user, auth_cookie):
        sent = await send_request(client, test_user, other_user, auth_cookie)
        await client.post(
            f"/api/friend/invitation/{sent.json()['data']['_id']}",
            json={'action': 'accept'},
            headers=auth_cookie(other_user),
        )

        removed = await client.delete(f"/api/friend/{other_user['_id']}", headers=auth_cookie(test_user))
        again = await send_request(client, test_user, other_user, auth_cookie)

        assert removed.status_code == 200
        assert (await db.users.find_one({'_id': other_user['_id']}))['friends'] == []
        assert again.status_code == 201

    @pytest.mark.asyncio
    async def test_remove_unknown_friend(self, client: AsyncClient, test_user, other_user, auth_cookie):
        response = await client.delete(f"/api/friend/{other_user['_id']}", headers=auth_cookie(test_user))

        assert response.status_code == 404


class TestSuggestions:

    @pytest.mark.asyncio
    async def test_suggestions_exclude_self_pending_and_unverified(
        self, client: AsyncClient, db, test_user, other_user, make_user, auth_cookie
    ):
        candidate = await make_user()
        await make_user(is_verified=False)
        await FriendRequestDocument(sender=other_user['_id'], receiver=test_user['_id']).insert(db)

        response = await client.get('/api/suggestions/', headers=auth_cookie(test_user))

        assert response.status_code == 200
        assert [u['_id'] for u in response.json()['data']] == [str(candidate['_id'])]

    @pytest.mark.asyncio
    async def test_request_from_suggestions(self, client: AsyncClient, test_user, other_user, auth_cookie):
        response = await client.post(
            '/api/suggestions/request',
            json={'targetUserId': str(other_user['_id'])},
            headers=auth_cookie(test_user),
        )

        assert response.status_code == 201
        assert response.json()['message'] == 'Friend request sent successfully'

    @pytest.mark.asyncio
    async def test_profile_filters_posts_by_relationship(
        self, client: AsyncClient, db, test_user, other_user, auth_cookie
    ):
        await PostDocument(author=other_user['_id'], content='open').insert(db)
        await PostDocument(author=other_user['_id'], content='friends', visibility='connections').insert(db)
        await PostDocument(author=other_user['_id'], content='mine', visibility='private').insert(db)

        stranger_view = await client.get(
            f"/api/suggestions/profile/{other_user['_id']}", headers=auth_cookie(test_user)
        )
        own_view = await client.get(
            f"/api/suggestions/profile/{other_user['_id']}", headers=auth_cookie(other_user)
        )

        data = stranger_view.json()['data']
        assert data['user']['username'] == other_user['username']
        assert 'password' not in data['user']
        assert [p['content'] for p in data['posts']] == ['open']
        assert len(own_view.json()['data']['posts']) == 3

    @pytest.mark.asyncio
    async def test_profile_of_unverified_user(self, client: AsyncClient, test_user, make_user, auth_cookie):
        pending = await make_user(is_verified=False)

        response = await client.get(f"/api/suggestions/profile/{pending['_id']}", headers=auth_cookie(test_user))

        assert response.status_code == 404
        assert response.json()['message'] == 'User account not activated'
