"""
EntreprenApp - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Optional

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

# Set testing environment before the application reads its settings
os.environ['ENVIRONMENT'] = 'testing'
os.environ['MONGO_URL'] = 'mongodb://localhost:27017'
os.environ['MONGODB_DB_NAME'] = 'entreprenapp_test'
os.environ['JWT_ACCESS_SECRET'] = 'test-access-secret-0123456789abcdef'
os.environ['JWT_REFRESH_SECRET'] = 'test-refresh-secret-0123456789abcdef'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'

from entreprenapp.api.deps import get_presence, get_publisher
from entreprenapp.core.security import (
    ACCESS_COOKIE,
    create_access_token,
    hash_password,
    user_claims,
)
from entreprenapp.db.mongodb import get_database
from entreprenapp.main import app
from entreprenapp.models.user import UserDocument, UserRole
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import RealtimePublisher

fake = Faker()

TEST_PASSWORD = 'Secret1!'


class RecordingSocketServer:
    """Socket.IO server double that records what would have been sent."""

    def __init__(self):
        self.emitted = []
        self.rooms = {}
        self.sessions = {}

    async def emit(self, event, data=None, to=None, room=None, skip_sid=None, **kwargs):
        self.emitted.append({'event': event, 'data': data, 'to': to or room, 'skip_sid': skip_sid})

    async def enter_room(self, sid, room, namespace=None):
        self.rooms.setdefault(room, set()).add(sid)

    async def save_session(self, sid, session, namespace=None):
        self.sessions[sid] = session

    async def get_session(self, sid, namespace=None):
        return self.sessions.get(sid, {})

    def events(self, name):
        return [e for e in self.emitted if e['event'] == name]


@pytest.fixture
def db():
    """Fresh in-memory Motor-compatible database for each test"""
    return AsyncMongoMockClient()['entreprenapp_test']


@pytest.fixture
def presence() -> PresenceRegistry:
    return PresenceRegistry()


@pytest.fixture
def sio() -> RecordingSocketServer:
    return RecordingSocketServer()


@pytest.fixture
def publisher(sio, presence) -> RealtimePublisher:
    return RealtimePublisher(sio, presence)


@pytest.fixture
async def client(db, presence, publisher) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and real-time overrides"""
    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_presence] = lambda: presence
    app.dependency_overrides[get_publisher] = lambda: publisher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Factory inserting a user straight into the store"""
    async def factory(
        role: str = UserRole.ENTREPRENEUR.value,
        is_verified: bool = True,
        password: str = TEST_PASSWORD,
        email: Optional[str] = None,
        **fields,
    ) -> dict:
        data = {
            'username': fake.unique.user_name(),
            'fullname': fake.name(),
        }
        data.update(fields)
        document = UserDocument(
            email=(email or fake.unique.email()).lower(),
            password=hash_password(password),
            role=role,
            is_verified=is_verified,
            **data,
        )
        return await document.insert(db)

    return factory


@pytest.fixture
async def test_user(make_user) -> dict:
    return await make_user()


@pytest.fixture
async def other_user(make_user) -> dict:
    return await make_user()


@pytest.fixture
async def admin_user(make_user) -> dict:
    return await make_user(role=UserRole.ADMIN.value)


@pytest.fixture
def auth_cookie():
    """Build a Cookie header carrying a fresh access token for a user"""
    def build(user: dict) -> dict:
        token = create_access_token(user_claims(user))
        return {'Cookie': f'{ACCESS_COOKIE}={token}'}

    return build


@pytest.fixture
def bearer():
    """Build an Authorization header for a user"""
    def build(user: dict) -> dict:
        token = create_access_token(user_claims(user))
        return {'Authorization': f'Bearer {token}'}

    return build
