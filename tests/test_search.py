"""
Integration Tests for Search
Tests for: query validation, category filters, regex escaping, autocomplete
"""
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from entreprenapp.models.challenge import ChallengeDocument
from entreprenapp.models.post import PostDocument
from entreprenapp.models.project import ProjectDocument


@pytest.mark.asyncio
async def test_short_query_rejected(client: AsyncClient):
    response = await client.get('/api/search/', params={'q': ' a '})

    assert response.status_code == 400
    assert response.json()['message'] == 'Query must be at least 2 characters long'


@pytest.mark.asyncio
async def test_invalid_type_rejected(client: AsyncClient):
    response = await client.get('/api/search/', params={'q': 'solar', 'type': 'groups'})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_all_categories(client: AsyncClient, db, test_user, make_user):
    await make_user(fullname='Solar Sam')
    await PostDocument(author=test_user['_id'], content='Our SOLAR pilot is live').insert(db)
    await PostDocument(author=test_user['_id'], content='solar diary', visibility='private').insert(db)
    await ProjectDocument(title='Solar kiosks', description='Energy', creator=test_user['_id']).insert(db)
    await ProjectDocument(
        title='Solar farm', description='Energy', creator=test_user['_id'], status='Funded'
    ).insert(db)

    response = await client.get('/api/search/', params={'q': 'solar'})

    assert response.status_code == 200
    body = response.json()
    assert body['query'] == 'solar'
    assert body['count'] == {'posts': 1, 'users': 1, 'events': 0, 'challenges': 0, 'projects': 1}
    assert body['total'] == 3
    assert body['results']['posts'][0]['author']['username'] == test_user['username']


@pytest.mark.asyncio
async def test_search_single_type(client: AsyncClient, db, test_user):
    await PostDocument(author=test_user['_id'], content='fintech meetup').insert(db)
    await ProjectDocument(title='Fintech wallet', description='Payments', creator=test_user['_id']).insert(db)

    response = await client.get('/api/search/', params={'q': 'fintech', 'type': 'Projects'})

    body = response.json()
    assert body['count']['projects'] == 1
    assert body['results']['posts'] == []


@pytest.mark.asyncio
async def test_regex_characters_are_literal(client: AsyncClient, db, test_user):
    await PostDocument(author=test_user['_id'], content='Raised 2x (seed)').insert(db)
    await PostDocument(author=test_user['_id'], content='Raised 22 seed').insert(db)

    response = await client.get('/api/search/', params={'q': '2x (seed)', 'type': 'posts'})

    assert [p['content'] for p in response.json()['results']['posts']] == ['Raised 2x (seed)']


@pytest.mark.asyncio
async def test_expired_challenges_excluded(client: AsyncClient, db, test_user):
    for days in (5, -5):
        await ChallengeDocument(
            title='Water challenge',
            description='Clean water',
            organisation=test_user['_id'],
            sector='Health',
            deadline=datetime.utcnow() + timedelta(days=days),
            funding_amount=100,
        ).insert(db)

    response = await client.get('/api/search/', params={'q': 'water', 'type': 'challenges'})

    assert response.json()['count']['challenges'] == 1


@pytest.mark.asyncio
async def test_suggestions(client: AsyncClient, db, test_user, make_user):
    await make_user(fullname='Fatou Agri')
    await PostDocument(author=test_user['_id'], content='agri inputs marketplace').insert(db)

    short = await client.get('/api/search/suggestions', params={'q': 'a'})
    response = await client.get('/api/search/suggestions', params={'q': 'agri', 'limit': 3})

    assert short.json()['suggestions'] == {'users': [], 'posts': [], 'events': []}
    suggestions = response.json()['suggestions']
    assert len(suggestions['users']) == 1
    assert len(suggestions['posts']) == 1


@pytest.mark.asyncio
async def test_suggestion_limit_capped(client: AsyncClient):
    response = await client.get('/api/search/suggestions', params={'q': 'agri', 'limit': 50})

    assert response.status_code == 400
