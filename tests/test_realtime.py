"""
Unit Tests for Real-time Delivery
Tests for: presence registry, publisher, Socket.IO gateway handlers
"""
import pytest

from entreprenapp.core.security import create_access_token
from entreprenapp.realtime.gateway import RealtimeGateway
from entreprenapp.realtime.presence import PresenceRegistry
from entreprenapp.realtime.publisher import OutboundEvent, RealtimePublisher


class ExplodingSocketServer:
    async def emit(self, *args, **kwargs):
        raise ConnectionError('transport closed')


class TestPresenceRegistry:

    def test_connect_and_lookup(self):
        presence = PresenceRegistry()

        presence.connect('u1', 'a')
        presence.connect('u1', 'b')

        assert presence.lookup('u1') == {'a', 'b'}
        assert presence.is_online('u1')
        assert presence.online_users() == ['u1']

    def test_offline_only_after_last_connection(self):
        presence = PresenceRegistry()
        presence.connect('u1', 'a')
        presence.connect('u1', 'b')

        assert presence.disconnect('a') is None
        assert presence.is_online('u1')
        assert presence.disconnect('b') == 'u1'
        assert not presence.is_online('u1')
        assert len(presence) == 0

    def test_unknown_connection(self):
        assert PresenceRegistry().disconnect('ghost') is None

    def test_lookup_returns_a_copy(self):
        presence = PresenceRegistry()
        presence.connect('u1', 'a')

        presence.lookup('u1').add('b')

        assert presence.lookup('u1') == {'a'}


class TestPublisher:

    @pytest.mark.asyncio
    async def test_offline_recipient_skipped(self, publisher, sio):
        delivered = await publisher.publish(OutboundEvent('u1', 'ping', {}))

        assert delivered is False
        assert sio.emitted == []

    @pytest.mark.asyncio
    async def test_online_recipient_gets_room_emit(self, publisher, presence, sio):
        presence.connect('u1', 'a')

        delivered = await publisher.publish_to_user('u1', 'ping', {'some_field': 1})

        assert delivered is True
        assert sio.emitted[0] == {'event': 'ping', 'data': {'someField': 1}, 'to': 'user:u1', 'skip_sid': None}

    @pytest.mark.asyncio
    async def test_emit_failure_is_swallowed(self, presence):
        presence.connect('u1', 'a')
        publisher = RealtimePublisher(ExplodingSocketServer(), presence)

        assert await publisher.publish(OutboundEvent('u1', 'ping', {})) is False
        await publisher.broadcast('users:online-list', [])

    @pytest.mark.asyncio
    async def test_announce_offline(self, publisher, sio):
        await publisher.announce_offline('u1')

        assert sio.events('users:online-list')[0]['data'] == []
        assert sio.events('user:offline')[0]['data']['userId'] == 'u1'


class TestGateway:

    @pytest.fixture
    def gateway(self, sio, presence, publisher) -> RealtimeGateway:
        return RealtimeGateway(sio, presence, publisher)

    @pytest.mark.asyncio
    async def test_join_registers_presence(self, gateway, sio, presence):
        await gateway.on_join('sid-1', {'userId': 'u1'})

        assert presence.is_online('u1')
        assert 'sid-1' in sio.rooms['user:u1']
        assert sio.events('connection:success')[0]['to'] == 'sid-1'
        assert sio.events('users:online-list')[0]['data'] == ['u1']

    @pytest.mark.asyncio
    async def test_join_requires_user_id(self, gateway, sio, presence):
        await gateway.on_join('sid-1', {})

        assert len(presence) == 0
        assert sio.events('connection:error')[0]['data'] == {'message': 'userId is required'}

    @pytest.mark.asyncio
    async def test_connect_with_cookie_pins_identity(self, gateway, sio, presence):
        token = create_access_token({'_id': 'u1', 'username': 'amina'})

        await gateway.on_connect('sid-1', {'HTTP_COOKIE': f'accessToken={token}'})
        await gateway.on_join('sid-1', {'userId': 'u2'})

        assert presence.is_online('u1')
        assert not presence.is_online('u2')
        assert sio.events('connection:error')[0]['data'] == {'message': 'Identity mismatch'}

    @pytest.mark.asyncio
    async def test_connect_with_bad_token_waits_for_join(self, gateway, presence):
        await gateway.on_connect('sid-1', {}, {'token': 'garbage'})

        assert len(presence) == 0

    @pytest.mark.asyncio
    async def test_disconnect_announces_offline(self, gateway, sio, presence):
        await gateway.on_join('sid-1', {'userId': 'u1'})
        await gateway.on_join('sid-2', {'userId': 'u1'})

        await gateway.on_disconnect('sid-1')
        assert sio.events('user:offline') == []

        await gateway.on_disconnect('sid-2')
        assert sio.events('user:offline')[0]['data']['userId'] == 'u1'

    @pytest.mark.asyncio
    async def test_direct_relay_targets_receiver_room(self, gateway, sio):
        await gateway.on_join('sid-1', {'userId': 'u1'})
        relay = gateway._direct_relay('message:user-typing', ('receiverId',))

        await relay('sid-1', {'receiverId': 'u2'})

        typing = sio.events('message:user-typing')[0]
        assert typing['to'] == 'user:u2'
        assert typing['skip_sid'] == 'sid-1'
        assert typing['data'] == {'receiverId': 'u2', 'senderId': 'u1'}

    @pytest.mark.asyncio
    async def test_direct_relay_ignores_claimed_sender(self, gateway, sio):
        await gateway.on_join('sid-1', {'userId': 'u1'})
        relay = gateway._direct_relay('message:new', ('receiverId',), ack=True)

        await relay('sid-1', {'receiverId': 'u2', 'senderId': 'u3', 'text': 'hi'})

        relayed = sio.events('message:new')[0]
        assert relayed['data']['senderId'] == 'u1'
        assert sio.events('message:sent')[0]['data']['senderId'] == 'u1'

    @pytest.mark.asyncio
    async def test_direct_relay_refused_before_join(self, gateway, sio):
        relay = gateway._direct_relay('notification:new', ('recipientId',))

        await relay('sid-anon', {'recipientId': 'u2', 'senderId': 'u1'})

        assert sio.events('notification:new') == []
        assert sio.events('connection:error')[0]['to'] == 'sid-anon'
