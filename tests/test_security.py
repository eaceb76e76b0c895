"""
Unit Tests for Security Utilities
Tests for: password hashing, access/refresh tokens, one-time codes
"""
from datetime import timedelta

import pytest
from jose import ExpiredSignatureError, JWTError

from entreprenapp.core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    create_access_token,
    create_refresh_token,
    decode_token,
    generate_reset_token,
    generate_verification_code,
    hash_password,
    hash_reset_token,
    user_claims,
    verify_password,
)

CLAIMS = {
    '_id': '65f000000000000000000001',
    'username': 'amina',
    'email': 'amina@startup.io',
    'role': 'entrepreneur',
    'isVerified': True,
}


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password('Secret1!')

        assert hashed != 'Secret1!'
        assert verify_password('Secret1!', hashed)
        assert not verify_password('Secret2!', hashed)


class TestTokens:

    def test_access_token_round_trip(self):
        payload = decode_token(create_access_token(CLAIMS), ACCESS_TOKEN)

        assert payload['sub'] == CLAIMS['_id']
        assert payload['user'] == CLAIMS
        assert payload['type'] == ACCESS_TOKEN

    def test_refresh_token_uses_its_own_secret(self):
        refresh = create_refresh_token(CLAIMS)

        assert decode_token(refresh, REFRESH_TOKEN)['user']['_id'] == CLAIMS['_id']
        with pytest.raises(JWTError):
            decode_token(refresh, ACCESS_TOKEN)

    def test_access_token_rejected_as_refresh(self):
        with pytest.raises(JWTError):
            decode_token(create_access_token(CLAIMS), REFRESH_TOKEN)

    def test_expired_token(self):
        token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-10))

        with pytest.raises(ExpiredSignatureError):
            decode_token(token, ACCESS_TOKEN)

    def test_user_claims_snapshot(self):
        user = {
            '_id': 'abc',
            'username': 'amina',
            'email': 'amina@startup.io',
            'role': 'investor',
            'is_verified': True,
            'password': 'hash',
        }

        claims = user_claims(user)

        assert claims == {
            '_id': 'abc',
            'username': 'amina',
            'email': 'amina@startup.io',
            'role': 'investor',
            'isVerified': True,
        }


class TestOneTimeCodes:

    def test_verification_code_is_six_digits(self):
        for _ in range(50):
            code = generate_verification_code()
            assert len(code) == 6
            assert code.isdigit()

    def test_reset_token_stores_only_digest(self):
        raw, digest = generate_reset_token()

        assert raw != digest
        assert hash_reset_token(raw) == digest
