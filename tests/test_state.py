"""Unit tests for signed OAuth state."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from leadsheets.errors import MalformedState
from leadsheets.utils.state import ALGORITHM, decode_state, encode_state

SECRET = "test-secret"


def _signed(claims: dict) -> str:
    claims = {"exp": datetime.now(timezone.utc) + timedelta(minutes=5), **claims}
    return jwt.encode(claims, SECRET, algorithm=ALGORITHM)


def test_state_carries_tenant_id():
    state = encode_state("t1", SECRET)
    assert decode_state(state, SECRET) == "t1"


def test_tampered_state_rejected():
    header, _, signature = encode_state("t1", SECRET).split(".")
    _, forged_payload, _ = encode_state("t2", "other-secret").split(".")
    with pytest.raises(MalformedState):
        decode_state(f"{header}.{forged_payload}.{signature}", SECRET)


def test_state_signed_with_other_secret_rejected():
    with pytest.raises(MalformedState):
        decode_state(encode_state("t1", "other-secret"), SECRET)


def test_expired_state_rejected():
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    state = encode_state("t1", SECRET, expires_in=600, now=issued)
    with pytest.raises(MalformedState):
        decode_state(state, SECRET)


@pytest.mark.parametrize("state", [None, "", "not-a-state", "{\"tenantId\": \"t1\"}"])
def test_missing_or_unsigned_state_rejected(state):
    with pytest.raises(MalformedState):
        decode_state(state, SECRET)


def test_signed_state_without_tenant_rejected():
    with pytest.raises(MalformedState):
        decode_state(_signed({}), SECRET)


def test_signed_state_with_non_string_tenant_rejected():
    with pytest.raises(MalformedState):
        decode_state(_signed({"tenantId": 42}), SECRET)
