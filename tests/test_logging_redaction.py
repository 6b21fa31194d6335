from pagewright.observability.logging_utils import redact_payload


def test_sensitive_keys_are_masked():
    payload = {"email": "user@example.com", "Password": "hunter2", "other": "ok"}
    redacted = redact_payload(payload)
    assert redacted["email"] == "[REDACTED]"
    assert redacted["Password"] == "[REDACTED]"
    assert redacted["other"] == "ok"
    assert payload["email"] == "user@example.com"


def test_nested_payloads_are_walked():
    payload = {"body": {"items": [{"cardNumber": "4111", "sku": "A1"}]}, "headers": {"Authorization": "Bearer x"}}
    redacted = redact_payload(payload)
    assert redacted["body"]["items"][0] == {"cardNumber": "[REDACTED]", "sku": "A1"}
    assert redacted["headers"]["Authorization"] == "[REDACTED]"


def test_redaction_disabled(monkeypatch):
    monkeypatch.setenv("PAGEWRIGHT_LOG_REDACT", "false")
    payload = {"token": "abc"}
    assert redact_payload(payload) == {"token": "abc"}
