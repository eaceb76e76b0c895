"""
Integration Tests for the Ownership Guard
Tests for: owner-only edits, admin deletes, 404 before 403, 403 before body validation
"""
from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from httpx import AsyncClient

from entreprenapp.models.event import EventDocument
from entreprenapp.models.post import PostDocument
from entreprenapp.models.user import UserRole


@pytest.fixture
async def post(db, test_user) -> dict:
    return await PostDocument(author=test_user['_id'], content='Seed round closed').insert(db)


@pytest.fixture
async def event(db, make_user) -> dict:
    organizer = await make_user(role=UserRole.UNIVERSITY.value)
    start = datetime.utcnow() + timedelta(days=7)
    return await EventDocument(
        title='Demo day',
        description='Pitches',
        location='Dakar',
        organizer=organizer['_id'],
        start_date=start,
        end_date=start + timedelta(hours=3),
    ).insert(db)


@pytest.mark.asyncio
async def test_owner_can_edit_post(client: AsyncClient, post, test_user, auth_cookie):
    response = await client.put(
        f"/api/post/edit/{post['_id']}",
        json={'content': 'Series A closed'},
        headers=auth_cookie(test_user),
    )

    assert response.status_code == 200
    assert response.json()['data']['content'] == 'Series A closed'


@pytest.mark.asyncio
async def test_non_owner_cannot_delete_post(client: AsyncClient, db, post, other_user, auth_cookie):
    response = await client.delete(f"/api/post/delete/{post['_id']}", headers=auth_cookie(other_user))

    assert response.status_code == 403
    assert "Vous n'avez pas la permission" in response.json()['message']
    assert await db.posts.find_one({'_id': post['_id']}) is not None


@pytest.mark.asyncio
async def test_admin_can_delete_post(client: AsyncClient, db, post, admin_user, auth_cookie):
    response = await client.delete(f"/api/post/delete/{post['_id']}", headers=auth_cookie(admin_user))

    assert response.status_code == 200
    assert await db.posts.find_one({'_id': post['_id']}) is None


@pytest.mark.asyncio
async def test_admin_cannot_edit_foreign_post(client: AsyncClient, post, admin_user, auth_cookie):
    response = await client.put(
        f"/api/post/edit/{post['_id']}",
        json={'content': 'Hijacked'},
        headers=auth_cookie(admin_user),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_missing_resource_is_not_found(client: AsyncClient, test_user, auth_cookie):
    response = await client.delete(f'/api/post/delete/{ObjectId()}', headers=auth_cookie(test_user))

    assert response.status_code == 404
    assert response.json()['message'] == 'Post non trouvé'


@pytest.mark.asyncio
async def test_malformed_id_is_bad_request(client: AsyncClient, test_user, auth_cookie):
    response = await client.delete('/api/post/delete/not-an-id', headers=auth_cookie(test_user))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_guard_requires_authentication(client: AsyncClient, post):
    response = await client.delete(f"/api/post/delete/{post['_id']}")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_non_owner_cannot_edit_event(client: AsyncClient, event, other_user, auth_cookie):
    response = await client.put(
        f"/api/event/{event['_id']}",
        json={'title': 'Renamed'},
        headers=auth_cookie(other_user),
    )

    assert response.status_code == 403
    assert response.json()['message'] == "Vous n'avez pas la permission de modifier cet événement"


@pytest.mark.asyncio
async def test_forbidden_before_body_validation(client: AsyncClient, event, other_user, auth_cookie):
    """A non-owner sending an invalid body still gets 403"""
    response = await client.put(
        f"/api/event/{event['_id']}",
        json={'seats': -5},
        headers=auth_cookie(other_user),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_only_organizer_sees_registrations(client: AsyncClient, db, event, other_user, auth_cookie):
    organizer = await db.users.find_one({'_id': event['organizer']})

    denied = await client.get(f"/api/event/{event['_id']}/registrations", headers=auth_cookie(other_user))
    allowed = await client.get(f"/api/event/{event['_id']}/registrations", headers=auth_cookie(organizer))

    assert denied.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json()['count'] == 0
