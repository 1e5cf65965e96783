"""Tests for request/reply pairing and the attribution (do-not-track) rule."""

import json

import pytest

from teaktrace.config import EngineConfig
from teaktrace.kernel.errors import AttributionError, RequestError, UnknownSessionError
from teaktrace.kernel.history import RunHistory


INIT = 'D Teak: Teak@1a2b: {"android":"2.1.0"}'
SESSION = 'D Teak.Session: io.teak.sdk.Session@ff01: {"startDate":1508428860}'
USERS = "/games/1234/users.json"


def request(request_id, endpoint=USERS, payload=None, session="ff01"):
    body = {
        "request_id": request_id,
        "hostname": "gocarrot.com",
        "endpoint": endpoint,
        "session": session,
        "payload": payload if payload is not None else {"api_key": "user-1"},
    }
    return f"D Teak.Request: io.teak.sdk.Request@77aa: {json.dumps(body)}"


def reply(request_id, session="ff01", payload=None):
    body = {"request_id": request_id, "session": session, "response_time": 12.5, "payload": payload}
    return f"D Teak.Request: Reply@77aa: {json.dumps(body)}"


def create_history(*lines, config=None) -> RunHistory:
    history = RunHistory(config) if config else RunHistory()
    history.process_lines((INIT, SESSION) + lines)
    return history


def test_request_is_recorded_without_reply():
    history = create_history(request("r1", endpoint="/me/events", payload={"event": "x"}))

    record = history.current_session.requests["r1"]
    assert record.request == {"endpoint": "/me/events", "hostname": "gocarrot.com", "payload": {"event": "x"}}
    assert record.reply is None
    assert not record.replied


def test_reply_pairs_with_request():
    history = create_history(request("r1", endpoint="/me/events"), reply("r1", payload={"status": "ok"}))

    record = history.current_session.requests["r1"]
    assert record.replied
    assert record.reply == {"response_time": 12.5, "payload": {"status": "ok"}}


def test_reply_with_empty_payload_still_counts_as_reply():
    history = create_history(request("r1", endpoint="/me/events"), reply("r1"))

    with pytest.raises(RequestError, match="already has a reply"):
        history.process_line(reply("r1"))


def test_request_for_unknown_session_is_fatal():
    history = create_history()

    with pytest.raises(UnknownSessionError, match="unknown session"):
        history.process_line(request("r1", session="dead"))


def test_duplicate_request_id_is_fatal_and_atomic():
    history = create_history(request("r1", endpoint="/me/events", payload={"n": 1}))

    with pytest.raises(RequestError, match="Duplicate request"):
        history.process_line(request("r1", endpoint="/me/events", payload={"n": 2}))
    assert history.current_session.requests["r1"].request["payload"] == {"n": 1}


def test_reply_to_unknown_request_is_fatal():
    history = create_history()

    with pytest.raises(RequestError, match="Reply to unknown request"):
        history.process_line(reply("nope"))


def test_first_registration_request_becomes_attribution_payload():
    payload = {"api_key": "user-1", "install_referrer": "utm_source=test"}
    history = create_history(request("r1", payload=payload))

    assert history.attribution_payload == payload
    assert history.current_session.attribution_payload == payload


def test_first_registration_request_marked_do_not_track_is_fatal():
    history = create_history()

    with pytest.raises(AttributionError, match="First registration request"):
        history.process_line(request("r1", payload={"api_key": "u", "do_not_track_event": True}))
    assert history.attribution_payload is None
    assert history.current_session.requests == {}


def test_repeated_registration_without_marker_is_fatal():
    history = create_history(request("r1"))

    with pytest.raises(AttributionError, match="not marked do-not-track"):
        history.process_line(request("r2", payload={"api_key": "user-1"}))
    assert "r2" not in history.current_session.requests


def test_repeated_registration_with_marker_does_not_overwrite():
    history = create_history(
        request("r1", payload={"api_key": "user-1"}),
        request("r2", payload={"api_key": "user-1", "do_not_track_event": True}),
    )

    assert history.attribution_payload == {"api_key": "user-1"}
    assert set(history.current_session.requests) == {"r1", "r2"}


def test_non_registration_requests_do_not_touch_attribution():
    history = create_history(request("r1", endpoint="/me/events", payload={"do_not_track_event": True}))

    assert history.attribution_payload is None


def test_each_session_has_its_own_attribution():
    history = create_history(
        request("r1", payload={"api_key": "first"}),
        'D Teak.Session: io.teak.sdk.Session@ff02: {"startDate":1508429000}',
        request("r2", payload={"api_key": "second"}, session="ff02"),
    )

    assert history.session("ff01").attribution_payload == {"api_key": "first"}
    assert history.attribution_payload == {"api_key": "second"}


def test_reply_reaches_superseded_session():
    history = create_history(
        request("r1", endpoint="/me/events"),
        'D Teak.Session: io.teak.sdk.Session@ff02: {"startDate":1508429000}',
        reply("r1", session="ff01"),
    )

    assert history.session("ff01").requests["r1"].replied


def test_registration_endpoint_is_configurable():
    config = EngineConfig(registration_endpoint_pattern=r"^/v2/register$")
    history = create_history(
        request("r1", payload={"api_key": "ignored"}),
        request("r2", endpoint="/v2/register", payload={"api_key": "new"}),
        config=config,
    )

    assert history.attribution_payload == {"api_key": "new"}
