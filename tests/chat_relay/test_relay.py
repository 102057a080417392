from __future__ import annotations

import json

import pytest

from chat_relay.config import Settings
from chat_relay.errors import PayloadRejected
from chat_relay.relay import Relay, find_header
from diagnostics import TraceRecorder, scoped_recorder

UPSTREAM = "https://api.openai.com/v1/chat/completions"


@pytest.fixture
def relay(stub_session):
    return Relay(UPSTREAM, timeout=5.0, session=stub_session)


def test_forwards_body_and_credential(relay, stub_session, stub_response_cls):
    stub_session.response = stub_response_cls(200, {"choices": []})

    result = relay.handle("POST", {"Authorization": "Bearer sk-test"}, {"model": "x"})

    assert result.status == 200
    assert result.body == {"choices": []}
    assert len(stub_session.calls) == 1
    call = stub_session.calls[0]
    assert call["url"] == UPSTREAM
    assert call["headers"] == {
        "Content-Type": "application/json",
        "Authorization": "Bearer sk-test",
    }
    assert json.loads(call["data"]) == {"model": "x"}
    assert call["timeout"] == 5.0


@pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"])
def test_non_post_rejected_without_upstream_call(relay, stub_session, method):
    result = relay.handle(method, {"Authorization": "Bearer sk-test"}, {"model": "x"})

    assert result.status == 405
    assert result.body == {"error": "Method not allowed"}
    assert stub_session.calls == []


def test_method_check_precedes_credential_check(relay):
    result = relay.handle("GET", {}, None)

    assert result.status == 405


@pytest.mark.parametrize("headers", [{}, {"Authorization": ""}, {"X-Api-Key": "sk-test"}])
def test_missing_credential_rejected_without_upstream_call(relay, stub_session, headers):
    result = relay.handle("POST", headers, {"model": "x"})

    assert result.status == 401
    assert result.body == {"error": "Missing API key"}
    assert stub_session.calls == []


def test_lowercase_method_and_header_are_accepted(relay, stub_session):
    result = relay.handle("post", {"authorization": "token"}, {})

    assert result.status == 200
    assert stub_session.calls[0]["headers"]["Authorization"] == "token"


def test_upstream_error_payload_passes_through(relay, stub_session, stub_response_cls):
    error_body = {"error": {"message": "Incorrect API key provided", "type": "invalid_request_error"}}
    stub_session.response = stub_response_cls(401, error_body)

    result = relay.handle("POST", {"Authorization": "Bearer bad"}, {"model": "x"})

    assert result.status == 401
    assert result.body == error_body


def test_network_failure_becomes_proxy_error(relay, stub_session, connection_error):
    stub_session.error = connection_error

    result = relay.handle("POST", {"Authorization": "Bearer sk-test"}, {"model": "x"})

    assert result.status == 500
    assert result.body == {"error": "Proxy error: connection refused"}


def test_unparseable_upstream_body_becomes_proxy_error(relay, stub_session, stub_response_cls):
    stub_session.response = stub_response_cls(502, text="<html>Bad gateway</html>")

    result = relay.handle("POST", {"Authorization": "Bearer sk-test"}, {"model": "x"})

    assert result.status == 500
    assert result.body["error"].startswith("Proxy error: ")


def test_handle_raw_decodes_after_checks(relay, stub_session):
    rejected = relay.handle_raw("GET", {}, b"not json")
    assert rejected.status == 405

    malformed = relay.handle_raw("POST", {"Authorization": "k"}, b"{not json")
    assert malformed.status == 400
    assert malformed.body == {"error": "Invalid JSON body"}
    assert stub_session.calls == []

    relay.handle_raw("POST", {"Authorization": "k"}, b"")
    assert stub_session.calls[0]["data"] == b"null"


def test_max_body_bytes(stub_session):
    relay = Relay(UPSTREAM, max_body_bytes=16, session=stub_session)

    result = relay.handle_raw("POST", {"Authorization": "k"}, json.dumps({"model": "x" * 32}).encode())

    assert result.status == 413
    assert result.body == {"error": "Payload too large"}
    assert stub_session.calls == []


def test_validator_can_reject_body(stub_session):
    def require_model(body):
        if not isinstance(body, dict) or "model" not in body:
            raise PayloadRejected("model is required")

    relay = Relay(UPSTREAM, validator=require_model, session=stub_session)

    rejected = relay.handle("POST", {"Authorization": "k"}, {"messages": []})
    accepted = relay.handle("POST", {"Authorization": "k"}, {"model": "x"})

    assert rejected.status == 400
    assert rejected.body == {"error": "model is required"}
    assert accepted.status == 200
    assert len(stub_session.calls) == 1


def test_per_call_upstream_override(relay, stub_session):
    relay.handle("POST", {"Authorization": "k"}, {}, upstream_url="http://localhost:9999/v1/chat/completions")

    assert stub_session.calls[0]["url"] == "http://localhost:9999/v1/chat/completions"


def test_from_settings_uses_configured_endpoint(stub_session):
    settings = Settings(
        upstream_base_url="http://upstream.test/",
        upstream_path="v1/chat/completions",
        upstream_timeout=None,
    )

    relay = Relay.from_settings(settings, session=stub_session)
    relay.handle("POST", {"Authorization": "k"}, {})

    assert relay.upstream_url == "http://upstream.test/v1/chat/completions"
    assert stub_session.calls[0]["timeout"] is None


def test_segments_recorded_when_recorder_active(relay):
    recorder = TraceRecorder()
    with scoped_recorder(recorder):
        relay.handle("POST", {"Authorization": "k"}, {"model": "x"})

    assert recorder.names() == ["relay.validate", "relay.upstream", "relay.decode"]
    upstream = recorder.segments()[1]
    assert upstream.metadata["status"] == 200


def test_find_header_is_case_insensitive():
    assert find_header({"AUTHORIZATION": "a"}, "authorization") == "a"
    assert find_header({}, "authorization") is None


def test_raw_body_exactly_at_cap_is_forwarded(stub_session):
    payload = b'{"a":1,"b":[1,2]}'
    relay = Relay(UPSTREAM, max_body_bytes=len(payload), session=stub_session)

    accepted = relay.handle_raw("POST", {"Authorization": "k"}, payload)
    rejected = relay.handle_raw("POST", {"Authorization": "k"}, payload + b" ")

    assert accepted.status == 200
    assert rejected.status == 413
    assert len(stub_session.calls) == 1


def test_decoded_body_cap_counts_encoded_size(stub_session):
    body = {"model": "x"}
    size = len(json.dumps(body).encode("utf-8"))

    at_cap = Relay(UPSTREAM, max_body_bytes=size, session=stub_session)
    below_cap = Relay(UPSTREAM, max_body_bytes=size - 1, session=stub_session)

    assert at_cap.handle("POST", {"Authorization": "k"}, body).status == 200
    assert below_cap.handle("POST", {"Authorization": "k"}, body).status == 413


def test_validator_unexpected_exception_becomes_rejection(stub_session):
    def broken(body):
        raise ValueError("bad")

    relay = Relay(UPSTREAM, validator=broken, session=stub_session)

    result = relay.handle("POST", {"Authorization": "k"}, {})

    assert result.status == 400
    assert result.body == {"error": "bad"}
    assert stub_session.calls == []
