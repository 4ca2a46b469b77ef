import pytest

from steward_exec.tokens_hmac import mint, verify

S = b"secret"


def test_token_roundtrip():
    tok = mint(S, action="sendMessage", ttl_s=10, bind={"thread_id": "t1"})
    c = verify(S, tok, action="sendMessage", bind={"thread_id": "t1"})
    assert c is not None
    assert c.action == "sendMessage"
    assert c.bind["thread_id"] == "t1"


def test_wrong_secret_or_action_rejected():
    tok = mint(S, action="sendMessage", ttl_s=10)
    assert verify(b"other", tok, action="sendMessage") is None
    assert verify(S, tok, action="deleteTask") is None


def test_expired_token_rejected():
    tok = mint(S, action="archiveMessage", ttl_s=10, now=1000.0)
    assert verify(S, tok, action="archiveMessage", now=1005.0) is not None
    assert verify(S, tok, action="archiveMessage", now=1011.0) is None


def test_bind_mismatch_rejected():
    tok = mint(S, action="scheduleAction", ttl_s=10, bind={"event": "a"})
    assert verify(S, tok, action="scheduleAction", bind={"event": "b"}) is None


def test_garbage_token_rejected():
    assert verify(S, "not-a-token", action="sendMessage") is None
    assert verify(S, "", action="sendMessage") is None


def test_empty_secret_cannot_mint():
    with pytest.raises(ValueError):
        mint(b"", action="sendMessage", ttl_s=10)
