from datetime import timedelta

from jambi.core.security import (
    api_key_matches,
    create_access_token,
    create_webhook_signature,
    generate_api_key,
    generate_reference_code,
    generate_webhook_secret,
    hash_api_key,
    verify_token,
    verify_webhook_signature,
)


def test_reference_codes_are_ten_digits():
    for _ in range(200):
        code = generate_reference_code()
        assert len(code) == 10
        assert code.isdigit()
        assert code[0] != "0"


def test_api_key_format_and_hash():
    key, prefix, key_hash = generate_api_key(is_live=True)
    assert key.startswith("sk_live_")
    assert prefix == "sk_live_"
    assert key_hash == hash_api_key(key)
    assert key not in key_hash

    test_key, test_prefix, _ = generate_api_key(is_live=False)
    assert test_key.startswith("sk_test_")
    assert test_prefix == "sk_test_"


def test_api_key_matching():
    key, _, key_hash = generate_api_key(is_live=False)
    assert api_key_matches(key, key_hash)
    assert not api_key_matches(key + "x", key_hash)


def test_webhook_signature_round_trip():
    secret = generate_webhook_secret()
    body = '{"event":"payment.confirmed"}'
    signature = create_webhook_signature(body, "2026-01-01T00:00:00.000Z", secret)

    assert len(signature) == 64
    assert verify_webhook_signature(body, "2026-01-01T00:00:00.000Z", signature, secret)
    assert not verify_webhook_signature(body, "2026-01-01T00:00:01.000Z", signature, secret)
    assert not verify_webhook_signature(body + " ", "2026-01-01T00:00:00.000Z", signature, secret)
    assert not verify_webhook_signature(body, "2026-01-01T00:00:00.000Z", "é" * 64, secret)


def test_access_token_round_trip():
    token = create_access_token({"sub": "ops@jambi.test"})
    assert verify_token(token) == "ops@jambi.test"


def test_expired_or_garbage_token_is_rejected():
    expired = create_access_token({"sub": "ops@jambi.test"}, expires_delta=timedelta(minutes=-1))
    assert verify_token(expired) is None
    assert verify_token("not-a-token") is None
