"""Tests for table-driven payload decoding."""

from datetime import datetime, timezone

import pytest

from teaktrace.kernel.classify import classify_line
from teaktrace.kernel.errors import DecodeError
from teaktrace.kernel.events import (
    AppConfigRegistered,
    Heartbeat,
    Init,
    Lifecycle,
    ReplyAttached,
    RequestAttached,
    SessionCreated,
    StateTransition,
    SessionStateTransition,
    UnmodeledEvent,
    UnrecognizedShape,
    parse_event,
)


def decode(line: str):
    return parse_event(classify_line(line))


def test_init_captures_instance_and_version():
    event = decode('D Teak: Teak@1a2b: {"android":"2.1.0"}')

    assert isinstance(event, Init)
    assert event.instance_id == "1a2b"
    assert event.sdk_version == "2.1.0"


def test_package_prefix_is_stripped():
    event = decode('D Teak: io.teak.sdk.AppConfiguration@c0ffee: {"appId":"1234"}')

    assert isinstance(event, AppConfigRegistered)
    assert event.instance_id == "c0ffee"
    assert event.configuration == {"appId": "1234"}


def test_same_type_name_decodes_per_category():
    teak = decode('D Teak: State@1a2b: {"previousState":"Allocated","state":"Created"}')
    session = decode('D Teak.Session: State@ff01: {"previousState":"Allocated","state":"Created"}')

    assert isinstance(teak, StateTransition)
    assert isinstance(session, SessionStateTransition)
    assert session.previous_state == "Allocated"


def test_lifecycle_keeps_full_payload():
    event = decode('D Teak: Lifecycle@1a2b: {"callback":"onActivityCreated","appConfiguration":"c0ffee","deviceConfiguration":"beef01"}')

    assert isinstance(event, Lifecycle)
    assert event.app_configuration == "c0ffee"
    assert event.device_configuration == "beef01"
    assert event.details["callback"] == "onActivityCreated"


def test_epoch_seconds_become_timestamps():
    created = decode('D Teak.Session: Session@ff01: {"startDate":1508428860}')
    beat = decode('D Teak.Session: Heartbeat@ff01: {"userId":"u","timestamp":1508428920}')

    assert isinstance(created, SessionCreated)
    assert created.start_date == datetime.fromtimestamp(1508428860, tz=timezone.utc)
    assert isinstance(beat, Heartbeat)
    assert beat.timestamp == datetime.fromtimestamp(1508428920, tz=timezone.utc)


def test_request_and_reply_fields():
    request = decode(
        'D Teak.Request: Request@77aa: {"request_id":"9f1c","endpoint":"/me/events","session":"ff01","payload":{"a":1}}'
    )
    reply = decode('D Teak.Request: Reply@77aa: {"request_id":"9f1c","session":"ff01","response_time":12.5}')

    assert isinstance(request, RequestAttached)
    assert request.session_id == "ff01"
    assert request.payload == {"a": 1}
    assert isinstance(reply, ReplyAttached)
    assert reply.payload is None
    assert reply.response_time == 12.5


@pytest.mark.parametrize("line", [
    'D Teak: RemoteConfiguration@2c5e229: {"hostname":"gocarrot.com"}',
    'D Teak: IdentifyUser@36c6cad: {"userId":"demo-app-thingy-3"}',
    'D Teak: io.teak.sdk.TeakNotification@99: {"teakNotifId":"1"}',
    'D Teak: Notification@7f: {"teakNotifId":"2"}',
    'D Teak.Session: IdentifyUser@ff01: {"userId":"demo-app-thingy-3"}',
])
def test_unmodeled_shapes_are_accepted(line):
    assert isinstance(decode(line), UnmodeledEvent)


def test_unknown_type_name_is_unrecognized_shape_without_parsing_json():
    event = decode("D Teak: Frobnicate@12: {this is not json")

    assert isinstance(event, UnrecognizedShape)
    assert event.payload == "Frobnicate@12: {this is not json"


def test_free_text_payload_is_unrecognized_shape():
    assert isinstance(decode("D Teak: Lifecycle - onActivityResult"), UnrecognizedShape)


def test_malformed_json_is_fatal():
    with pytest.raises(DecodeError, match="State@1a2b"):
        decode('D Teak: State@1a2b: {"previousState":"Allocated",')


def test_missing_required_field_is_fatal():
    with pytest.raises(DecodeError, match="previousState"):
        decode('D Teak: State@1a2b: {"state":"Created"}')


def test_non_object_json_is_fatal():
    with pytest.raises(DecodeError, match="expected a JSON object"):
        decode('D Teak: Teak@1a2b: ["2.1.0"]')
