from datetime import timedelta

import pytest

from biztech.core.errors import AuthenticationError, ValidationError
from biztech.core.security import (
    check_password_policy,
    create_access_token,
    decode_access_token,
    hash_password,
    password_policy_errors,
    verify_password,
)
from biztech.services.redaction import REDACTED, redact_payload


def test_password_policy():
    assert password_policy_errors("Secret123") == []
    rules = {e["rule"] for e in password_policy_errors("short")}
    assert rules == {"min_length", "digit_required", "uppercase_required"}

    with pytest.raises(ValidationError) as exc:
        check_password_policy("alllowercase1")
    assert exc.value.code == "weak_password"


def test_hash_and_verify():
    hashed = hash_password("Secret123")
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed)
    assert not verify_password("Secret124", hashed)


def test_token_roundtrip_carries_version():
    token = create_access_token(account_id="acc_1", role="buyer", token_version=3)
    claims = decode_access_token(token)
    assert claims.account_id == "acc_1"
    assert claims.role == "buyer"
    assert claims.token_version == 3


def test_expired_or_garbage_token_rejected():
    expired = create_access_token(account_id="acc_1", role="buyer", token_version=0, expires_delta=timedelta(seconds=-5))
    for token in (expired, "not-a-jwt"):
        with pytest.raises(AuthenticationError) as exc:
            decode_access_token(token)
        assert exc.value.code == "invalid_token"


def test_redaction_masks_secrets_at_any_depth():
    out = redact_payload({"email": "a@example.com", "Code": "123456", "nested": [{"reset_token": "x", "ok": 1}]})
    assert out == {"email": "a@example.com", "Code": REDACTED, "nested": [{"reset_token": REDACTED, "ok": 1}]}
    assert redact_payload({"iban": "AE00"}, extra_keys={"IBAN"}) == {"iban": REDACTED}
