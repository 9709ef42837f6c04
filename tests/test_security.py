from inkgenius.core.security import (
    create_session_cookie,
    load_session_cookie,
    sign_webhook_payload,
    verify_whop_webhook,
)


def test_session_cookie_round_trip():
    cookie = create_session_cookie({"user_id": "abc", "session_version": 2})
    assert load_session_cookie(cookie) == {"user_id": "abc", "session_version": 2}


def test_tampered_session_cookie_rejected():
    cookie = create_session_cookie({"user_id": "abc", "session_version": 0})
    assert load_session_cookie(cookie[:-2] + "xx") is None


def test_expired_session_cookie_rejected():
    cookie = create_session_cookie({"user_id": "abc"})
    assert load_session_cookie(cookie, max_age_seconds=-1) is None


def test_webhook_signature():
    body = b'{"type":"payment.completed"}'
    sig = sign_webhook_payload(body, "secret")
    assert verify_whop_webhook(body, sig, "secret")
    assert verify_whop_webhook(body, f"sha256={sig}", "secret")
    assert not verify_whop_webhook(body, sig, "other-secret")
    assert not verify_whop_webhook(body + b" ", sig, "secret")
    assert not verify_whop_webhook(body, None, "secret")
    assert not verify_whop_webhook(body, "", "secret")
