"""
Integration Tests for Event Endpoints
Tests for: creator roles, broadcast notifications, registration, capacity, unregistering
"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from entreprenapp.models.event import EventDocument
from entreprenapp.models.user import UserRole


@pytest.fixture
async def university(make_user) -> dict:
    return await make_user(role=UserRole.UNIVERSITY.value)


async def make_event(db, organizer: dict, **fields) -> dict:
    start = datetime.utcnow() + timedelta(days=3)
    data = {
        'title': 'Pitch night',
        'description': 'Five minute pitches',
        'location': 'Abidjan',
        'start_date': start,
        'end_date': start + timedelta(hours=2),
    }
    data.update(fields)
    return await EventDocument(organizer=organizer['_id'], **data).insert(db)


def event_payload(**overrides) -> dict:
    start = datetime.utcnow() + timedelta(days=5)
    data = {
        'title': 'Hackathon',
        'description': 'Build for 48 hours',
        'location': 'Lagos',
        'startDate': start.isoformat(),
        'endDate': (start + timedelta(days=2)).isoformat(),
        'seats': 50,
    }
    data.update(overrides)
    return data


class TestCreateEvent:

    @pytest.mark.asyncio
    async def test_university_creates_and_users_are_notified(
        self, client: AsyncClient, db, university, test_user, other_user, auth_cookie
    ):
        response = await client.post('/api/event/', json=event_payload(), headers=auth_cookie(university))

        assert response.status_code == 201
        data = response.json()['data']
        assert data['status'] == 'Upcoming'
        assert data['organizer']['username'] == university['username']
        assert await db.notifications.count_documents({'type': 'event'}) == 2
        assert await db.notifications.count_documents({'recipient': university['_id']}) == 0

    @pytest.mark.asyncio
    async def test_entrepreneur_cannot_create(self, client: AsyncClient, test_user, auth_cookie):
        response = await client.post('/api/event/', json=event_payload(), headers=auth_cookie(test_user))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_end_before_start_rejected(self, client: AsyncClient, university, auth_cookie):
        start = datetime.utcnow() + timedelta(days=5)
        payload = event_payload(endDate=(start - timedelta(hours=1)).isoformat(), startDate=start.isoformat())

        response = await client.post('/api/event/', json=payload, headers=auth_cookie(university))

        assert response.status_code == 400
        assert response.json()['message'] == 'Validation error'


class TestUpdateEvent:

    @pytest.mark.asyncio
    async def test_seats_cannot_drop_below_registrations(
        self, client: AsyncClient, db, university, test_user, other_user, auth_cookie
    ):
        event = await make_event(db, university, seats=10, participants=[test_user['_id'], other_user['_id']])

        response = await client.put(
            f"/api/event/{event['_id']}", json={'seats': 1}, headers=auth_cookie(university)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_dates_checked_against_stored_values(self, client: AsyncClient, db, university, auth_cookie):
        event = await make_event(db, university)

        response = await client.put(
            f"/api/event/{event['_id']}",
            json={'endDate': (event['start_date'] - timedelta(hours=1)).isoformat()},
            headers=auth_cookie(university),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, client: AsyncClient, db, university, auth_cookie):
        event = await make_event(db, university)

        response = await client.put(f"/api/event/{event['_id']}", json={}, headers=auth_cookie(university))

        assert response.status_code == 400
        assert response.json()['message'] == 'No fields to update'


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_and_list(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(db, university, seats=3)

        response = await client.post(
            f"/api/event/{event['_id']}/register", json={}, headers=auth_cookie(test_user)
        )

        assert response.status_code == 201
        body = response.json()
        assert body['remainingSeats'] == 2
        assert body['data']['email'] == test_user['email']
        assert body['data']['paid'] is True

        mine = await client.get('/api/event/user/my-registrations', headers=auth_cookie(test_user))
        assert mine.json()['data'][0]['myRegistration']['name'] == test_user['fullname']

        detail = await client.get(f"/api/event/{event['_id']}")
        assert detail.json()['data']['registeredCount'] == 1
        assert 'registrations' not in detail.json()['data']

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(db, university)
        url = f"/api/event/{event['_id']}/register"

        await client.post(url, json={}, headers=auth_cookie(test_user))
        response = await client.post(url, json={}, headers=auth_cookie(test_user))

        assert response.status_code == 400
        assert response.json()['message'] == 'Vous êtes déjà inscrit à cet événement'

    @pytest.mark.asyncio
    async def test_full_event(self, client: AsyncClient, db, university, test_user, other_user, auth_cookie):
        event = await make_event(db, university, seats=1)
        url = f"/api/event/{event['_id']}/register"

        first = await client.post(url, json={}, headers=auth_cookie(test_user))
        second = await client.post(url, json={}, headers=auth_cookie(other_user))

        assert first.status_code == 201
        assert first.json()['remainingSeats'] == 0
        assert second.status_code == 400
        assert second.json()['message'] == 'Plus de places disponibles pour cet événement'

    @pytest.mark.asyncio
    async def test_cancelled_event_closed(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(db, university, status='Cancelled')

        response = await client.post(
            f"/api/event/{event['_id']}/register", json={}, headers=auth_cookie(test_user)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_paid_event_requires_accepted_method(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(
            db, university, is_paid=True, price=20, payment_methods=['mobile_money']
        )
        url = f"/api/event/{event['_id']}/register"

        refused = await client.post(url, json={'paymentMethod': 'bank_card'}, headers=auth_cookie(test_user))
        accepted = await client.post(url, json={'paymentMethod': 'mobile_money'}, headers=auth_cookie(test_user))

        assert refused.status_code == 400
        assert accepted.status_code == 201
        assert accepted.json()['data']['amount'] == 20
        assert accepted.json()['data']['paid'] is False

    @pytest.mark.asyncio
    async def test_unregister(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(db, university)
        await client.post(f"/api/event/{event['_id']}/register", json={}, headers=auth_cookie(test_user))

        response = await client.delete(f"/api/event/{event['_id']}/unregister", headers=auth_cookie(test_user))

        assert response.status_code == 200
        stored = await db.events.find_one({'_id': event['_id']})
        assert stored['participants'] == []
        assert stored['registrations'] == []

    @pytest.mark.asyncio
    async def test_unregister_when_not_registered(self, client: AsyncClient, db, university, test_user, auth_cookie):
        event = await make_event(db, university)

        response = await client.delete(f"/api/event/{event['_id']}/unregister", headers=auth_cookie(test_user))

        assert response.status_code == 400
