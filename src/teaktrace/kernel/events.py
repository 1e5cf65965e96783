"""Typed log events and the table-driven payload decoder.

A categorized payload has the shape ``[io.teak.sdk.]TypeName@<hex>: <json>``.
Decoding looks up ``(category, TypeName)`` in a single table and hands the
parsed JSON object to a pure decoder function. Shapes missing from the table
come back as :class:`UnrecognizedShape` so the caller can report them.
"""

import json
import re
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from teaktrace.config import DEFAULT_CONFIG, EngineConfig
from .classify import CategorizedLine, Category
from .errors import DecodeError


_PAYLOAD_RE = re.compile(r"^([A-Za-z_$][\w.$]*)@([a-fA-F0-9]+):\s*(.*)$")


class LogEvent(BaseModel):
    """Base for every decoded event; ``instance_id`` is the hex id after '@'."""
    category: ClassVar[Category]
    action: ClassVar[str]

    instance_id: str

    model_config = ConfigDict(frozen=True)

    def describe(self) -> str:
        return f"{self.action}@{self.instance_id}"


# Teak (SDK-level) events

class Init(LogEvent):
    category = Category.TEAK
    action = "Init"
    sdk_version: Optional[str] = Field(None, alias="android")

    def describe(self) -> str:
        return f"Teak instance {self.instance_id} created (sdk {self.sdk_version})"


class StateTransition(LogEvent):
    category = Category.TEAK
    action = "State"
    previous_state: Optional[str] = Field(..., alias="previousState")
    state: str

    def describe(self) -> str:
        return f"Teak state {self.previous_state} -> {self.state}"


class Lifecycle(LogEvent):
    category = Category.TEAK
    action = "Lifecycle"
    callback: str
    app_configuration: Optional[str] = Field(None, alias="appConfiguration")
    device_configuration: Optional[str] = Field(None, alias="deviceConfiguration")
    details: Dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        return f"Lifecycle {self.callback}"


class AppConfigRegistered(LogEvent):
    category = Category.TEAK
    action = "AppConfiguration"
    configuration: Dict[str, Any]

    def describe(self) -> str:
        return f"App configuration {self.instance_id} registered"


class DeviceConfigRegistered(LogEvent):
    category = Category.TEAK
    action = "DeviceConfiguration"
    configuration: Dict[str, Any]

    def describe(self) -> str:
        return f"Device configuration {self.instance_id} registered"


# Teak.Session events

class SessionCreated(LogEvent):
    category = Category.SESSION
    action = "Session"
    start_date: datetime = Field(..., alias="startDate")

    def describe(self) -> str:
        return f"Session {self.instance_id} created"


class SessionStateTransition(LogEvent):
    category = Category.SESSION
    action = "State"
    previous_state: Optional[str] = Field(..., alias="previousState")
    state: str

    def describe(self) -> str:
        return f"Session {self.instance_id} state {self.previous_state} -> {self.state}"


class Heartbeat(LogEvent):
    category = Category.SESSION
    action = "Heartbeat"
    timestamp: datetime

    def describe(self) -> str:
        return f"Heartbeat for session {self.instance_id}"


# Teak.Request events

class RequestAttached(LogEvent):
    category = Category.REQUEST
    action = "Request"
    request_id: str
    endpoint: str
    session_id: str = Field(..., alias="session")
    hostname: Optional[str] = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    def describe(self) -> str:
        return f"Request {self.request_id} to {self.endpoint}"


class ReplyAttached(LogEvent):
    category = Category.REQUEST
    action = "Reply"
    request_id: str
    session_id: str = Field(..., alias="session")
    response_time: Optional[float] = None
    payload: Optional[Any] = None

    def describe(self) -> str:
        return f"Reply to request {self.request_id}"


class UnmodeledEvent(LogEvent):
    """A recognized shape the engine accepts without any state effect."""
    action = "Unmodeled"
    type_name: str
    event_category: Category

    def describe(self) -> str:
        return f"{self.type_name}@{self.instance_id}"


class UnrecognizedShape(BaseModel):
    """A payload inside a known category that no decoder claims."""
    category: Category
    payload: str

    model_config = ConfigDict(frozen=True)


Decoder = Callable[[str, str, Dict[str, Any]], LogEvent]


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _model(model: Type[LogEvent]) -> Decoder:
    def decode(type_name: str, instance_id: str, data: Dict[str, Any]) -> LogEvent:
        try:
            return model.model_validate({**data, "instance_id": instance_id})
        except ValidationError as e:
            raise DecodeError(type_name, instance_id, _format_validation_error(e)) from e
    return decode


def _lifecycle(type_name: str, instance_id: str, data: Dict[str, Any]) -> LogEvent:
    try:
        return Lifecycle.model_validate({**data, "instance_id": instance_id, "details": data})
    except ValidationError as e:
        raise DecodeError(type_name, instance_id, _format_validation_error(e)) from e


def _configuration(model: Type[LogEvent]) -> Decoder:
    def decode(type_name: str, instance_id: str, data: Dict[str, Any]) -> LogEvent:
        return model(instance_id=instance_id, configuration=data)
    return decode


def _unmodeled(category: Category) -> Decoder:
    def decode(type_name: str, instance_id: str, data: Dict[str, Any]) -> LogEvent:
        return UnmodeledEvent(instance_id=instance_id, type_name=type_name, event_category=category)
    return decode


# One table covers every payload revision the SDK has logged.
DECODERS: Dict[Tuple[Category, str], Decoder] = {
    (Category.TEAK, "Teak"): _model(Init),
    (Category.TEAK, "State"): _model(StateTransition),
    (Category.TEAK, "Lifecycle"): _lifecycle,
    (Category.TEAK, "AppConfiguration"): _configuration(AppConfigRegistered),
    (Category.TEAK, "DeviceConfiguration"): _configuration(DeviceConfigRegistered),
    (Category.TEAK, "RemoteConfiguration"): _unmodeled(Category.TEAK),
    (Category.TEAK, "IdentifyUser"): _unmodeled(Category.TEAK),
    (Category.TEAK, "Notification"): _unmodeled(Category.TEAK),
    (Category.TEAK, "TeakNotification"): _unmodeled(Category.TEAK),
    (Category.SESSION, "Session"): _model(SessionCreated),
    (Category.SESSION, "State"): _model(SessionStateTransition),
    (Category.SESSION, "Heartbeat"): _model(Heartbeat),
    (Category.SESSION, "IdentifyUser"): _unmodeled(Category.SESSION),
    (Category.REQUEST, "Request"): _model(RequestAttached),
    (Category.REQUEST, "Reply"): _model(ReplyAttached),
}


def parse_event(
    classified: CategorizedLine,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Union[LogEvent, UnrecognizedShape]:
    """Decode a categorized line into a typed event.

    Raises:
        DecodeError: the shape is known but its JSON is malformed or incomplete
    """
    match = _PAYLOAD_RE.match(classified.payload)
    if match is None:
        return UnrecognizedShape(category=classified.category, payload=classified.payload)

    type_name, instance_id, body = match.groups()
    if config.type_prefix and type_name.startswith(config.type_prefix):
        type_name = type_name[len(config.type_prefix):]

    decoder = DECODERS.get((classified.category, type_name))
    if decoder is None:
        return UnrecognizedShape(category=classified.category, payload=classified.payload)

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise DecodeError(type_name, instance_id, f"invalid JSON ({e.msg})") from e
    if not isinstance(data, dict):
        raise DecodeError(type_name, instance_id, f"expected a JSON object, got {type(data).__name__}")

    return decoder(type_name, instance_id, data)
