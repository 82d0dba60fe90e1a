from datetime import datetime, timedelta, timezone

from jose import jwt

from opentextbook.core.config import Settings
from opentextbook.core.security import (
    create_session_token,
    decode_session_token,
    dummy_hash,
    hash_password,
    verify_password,
)

settings = Settings(secret_key="test-signing-key")


def test_hash_is_salted_and_verifies():
    first = hash_password("correct horse")
    second = hash_password("correct horse")
    assert first != second
    assert verify_password("correct horse", first)
    assert not verify_password("wrong horse", first)


def test_hash_uses_requested_rounds():
    hashed = hash_password("correct horse", rounds=1000)
    assert "$1000$" in hashed
    assert verify_password("correct horse", hashed)


def test_verify_fails_closed_on_malformed_hash():
    assert verify_password("anything", "not-a-real-hash") is False
    assert verify_password("anything", "") is False
    assert verify_password("anything", None) is False


def test_dummy_hash_is_a_real_hash_nothing_matches():
    assert dummy_hash().startswith("$pbkdf2-sha256$")
    assert not verify_password("password123", dummy_hash())


def test_session_token_round_trip():
    token = create_session_token("abc123", 60, settings)
    assert decode_session_token(token, settings) == "abc123"


def test_session_token_is_signed_with_the_given_settings():
    token = create_session_token("abc123", 60, settings)
    payload = jwt.decode(token, "test-signing-key", algorithms=[settings.jwt_algorithm])
    assert payload["sub"] == "abc123"
    assert decode_session_token(token, Settings(secret_key="another-key")) is None


def test_session_token_rejects_tampering_and_wrong_type():
    now = datetime.now(timezone.utc)
    exp = int((now + timedelta(minutes=1)).timestamp())
    forged = jwt.encode({"sub": "abc123", "type": "session", "exp": exp}, "some-other-secret", algorithm=settings.jwt_algorithm)
    assert decode_session_token(forged, settings) is None

    other = jwt.encode(
        {"sub": "abc123", "type": "access", "exp": exp},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    assert decode_session_token(other, settings) is None


def test_session_token_expires():
    token = create_session_token("abc123", -10, settings)
    assert decode_session_token(token, settings) is None
