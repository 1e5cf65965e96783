"""RunHistory: the aggregate root rebuilt from one device log stream.

Lines flow strictly forward: classify -> decode -> apply -> diff -> narrate.
Every handler validates before it writes, so a line that raises leaves the
history exactly as it was before that line.
"""

import copy
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from teaktrace.codes import DiagnosticCode
from teaktrace.config import DEFAULT_CONFIG, EngineConfig
from teaktrace.contracts import Diagnostic
from .classify import Category, IgnorableLine, UnrecognizedLine, classify_line
from .errors import (
    ConsistencyError,
    DuplicateSessionError,
    InstanceRecreatedError,
    RegistrationError,
    StateSequenceError,
    UnknownSessionError,
)
from .events import (
    AppConfigRegistered,
    DeviceConfigRegistered,
    Heartbeat,
    Init,
    Lifecycle,
    LogEvent,
    ReplyAttached,
    RequestAttached,
    SessionCreated,
    SessionStateTransition,
    StateTransition,
    UnmodeledEvent,
    UnrecognizedShape,
    parse_event,
)
from .session import INITIAL_STATE, Session, Transition
from .snapshot import take_snapshot
from .stream import EventStream, NarratedEvent


logger = logging.getLogger(__name__)

_UNRECOGNIZED_SHAPE_CODES = {
    Category.TEAK: DiagnosticCode.UNRECOGNIZED_TEAK_EVENT,
    Category.SESSION: DiagnosticCode.UNRECOGNIZED_SESSION_EVENT,
    Category.REQUEST: DiagnosticCode.UNRECOGNIZED_REQUEST_EVENT,
}

Aggregate = Union["RunHistory", Session]


class RunHistory:
    """SDK lifecycle state reconstructed from log text.

    One instance follows one device log. It may be fed incrementally (e.g. by
    polling logcat) but must not be driven from more than one caller at once.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self.id: Optional[str] = None
        self.sdk_version: Optional[str] = None
        self.app_configuration: Optional[Dict[str, Any]] = None
        self.device_configuration: Optional[Dict[str, Any]] = None
        self.app_configurations: Dict[str, Dict[str, Any]] = {}
        self.device_configurations: Dict[str, Dict[str, Any]] = {}
        self.state_transitions: List[Transition] = [(None, INITIAL_STATE)]
        self.lifecycle_events: List[Dict[str, Any]] = []
        self.sessions: List[Session] = []
        self.diagnostics: List[Diagnostic] = []
        self._modeled_teak_events = 0

        self._targets: Dict[type, Callable[[Any], Tuple[Aggregate, str]]] = {
            Init: self._self_target,
            StateTransition: self._self_target,
            Lifecycle: self._self_target,
            AppConfigRegistered: self._self_target,
            DeviceConfigRegistered: self._self_target,
            SessionCreated: self._self_target,
            SessionStateTransition: self._addressed_session,
            Heartbeat: self._heartbeat_session,
            RequestAttached: self._request_session,
            ReplyAttached: self._request_session,
        }
        self._handlers: Dict[type, Callable[[Any, Any], None]] = {
            Init: self._on_init,
            StateTransition: self._on_state,
            Lifecycle: self._on_lifecycle,
            AppConfigRegistered: self._on_app_configuration,
            DeviceConfigRegistered: self._on_device_configuration,
            SessionCreated: self._on_session_created,
            SessionStateTransition: lambda event, session: session.apply_state_transition(event),
            Heartbeat: lambda event, session: session.add_heartbeat(event),
            RequestAttached: lambda event, session: session.attach_request(event),
            ReplyAttached: lambda event, session: session.attach_reply(event),
        }

    # Query surface

    @property
    def current_state(self) -> str:
        return self.state_transitions[-1][1]

    @property
    def current_session(self) -> Optional[Session]:
        return self.sessions[-1] if self.sessions else None

    @property
    def attribution_payload(self) -> Optional[Dict[str, Any]]:
        """Attribution payload of the current session, if any."""
        session = self.current_session
        return session.attribution_payload if session else None

    def session(self, session_id: str) -> Optional[Session]:
        for session in self.sessions:
            if session.id == session_id:
                return session
        return None

    def to_h(self) -> Dict[str, Any]:
        """Deep copy of the full structural view; mutating it never touches the history."""
        return copy.deepcopy(self._view())

    def _view(self) -> Dict[str, Any]:
        current = self.current_session
        return {
            "id": self.id,
            "sdk_version": self.sdk_version,
            "current_state": self.current_state,
            "state_transitions": [list(t) for t in self.state_transitions],
            "app_configurations": self.app_configurations,
            "device_configurations": self.device_configurations,
            "app_configuration": self.app_configuration,
            "device_configuration": self.device_configuration,
            "lifecycle_events": self.lifecycle_events,
            "current_session": current.id if current else None,
            "sessions": [s._view() for s in self.sessions],
        }

    # Processing

    def process(self, text: str, stream: Optional[EventStream] = None) -> EventStream:
        """Process multi-line log text in order."""
        return self.process_lines(text.split("\n"), stream)

    def process_lines(self, lines: Iterable[str], stream: Optional[EventStream] = None) -> EventStream:
        stream = stream if stream is not None else EventStream()
        for line in lines:
            self.process_line(line, stream)
        return stream

    def process_line(self, line: str, stream: Optional[EventStream] = None) -> EventStream:
        """Process one raw line, extending ``stream`` (or a fresh one) with its events.

        Raises:
            ConsistencyError: the line violates a modeled invariant
        """
        stream = stream if stream is not None else EventStream()
        classified = classify_line(line, self.config)

        if isinstance(classified, IgnorableLine):
            return stream
        if isinstance(classified, UnrecognizedLine):
            self._report(
                DiagnosticCode.UNRECOGNIZED_LINE,
                f"Unrecognized log line: {classified.line}",
                classified.line,
            )
            return stream

        try:
            event = parse_event(classified, self.config)
            if isinstance(event, UnrecognizedShape):
                self._report(
                    _UNRECOGNIZED_SHAPE_CODES[event.category],
                    f"Unrecognized {event.category.value} event: {event.payload}",
                    classified.line,
                    event.category.value,
                )
                return stream
            narrated = self.apply(event)
        except ConsistencyError as e:
            if e.line is None:
                e.line = classified.line
            raise

        if narrated is not None:
            stream.append(narrated)
        return stream

    def apply(self, event: LogEvent) -> Optional[NarratedEvent]:
        """Apply one decoded event and narrate the resulting change.

        Unmodeled shapes are accepted without effect and produce no event.
        """
        if isinstance(event, UnmodeledEvent):
            logger.debug("Ignoring unmodeled %s event %s", event.event_category.value, event.describe())
            return None

        target, owner = self._targets[type(event)](event)
        snapshot = take_snapshot(target, owner)
        self._handlers[type(event)](event, target)
        if event.category is Category.TEAK:
            self._modeled_teak_events += 1

        diff = snapshot.diff(target)
        logger.debug("Applied %s to %s (%d differences)", event.describe(), owner, len(diff))
        return NarratedEvent(
            component=event.category.value,
            action=event.action,
            description=event.describe(),
            diff=tuple(diff),
            excluded=self.config.uninteresting_fields,
            indent=self.config.narrative_indent,
        )

    def _report(self, code: DiagnosticCode, message: str, line: str, category: Optional[str] = None) -> None:
        diagnostic = Diagnostic(code=code, message=message, line=line, category=category)
        logger.warning("%s", diagnostic)
        self.diagnostics.append(diagnostic)

    # Target resolution (runs before the snapshot, raises before any write)

    def _self_target(self, event: LogEvent) -> Tuple[Aggregate, str]:
        return self, "Teak"

    def _addressed_session(self, event: SessionStateTransition) -> Tuple[Aggregate, str]:
        session = self.session(event.instance_id)
        if session is None:
            raise UnknownSessionError("State transition for unknown session", event.instance_id)
        return session, f"session {session.id}"

    def _heartbeat_session(self, event: Heartbeat) -> Tuple[Aggregate, str]:
        session = self.current_session
        if session is None:
            raise UnknownSessionError("Heartbeat with no current session", event.instance_id)
        if session.id != event.instance_id:
            raise UnknownSessionError(
                f"Heartbeat for non-current session, current session is '{session.id}'",
                event.instance_id,
            )
        return session, f"session {session.id}"

    def _request_session(self, event: Union[RequestAttached, ReplyAttached]) -> Tuple[Aggregate, str]:
        session = self.session(event.session_id)
        if session is None:
            raise UnknownSessionError(f"{event.action} {event.request_id} for unknown session", event.session_id)
        return session, f"session {session.id}"

    # Teak handlers

    def _check_instance(self, event: LogEvent) -> None:
        if self.id is None or event.instance_id != self.id:
            raise InstanceRecreatedError(self.id, event.instance_id)

    def _on_init(self, event: Init, _target: Aggregate) -> None:
        if self.id is not None:
            raise InstanceRecreatedError(self.id, event.instance_id)
        if self._modeled_teak_events:
            raise ConsistencyError(
                f"Teak instance {event.instance_id} created after {self._modeled_teak_events} other Teak event(s)"
            )
        self.id = event.instance_id
        self.sdk_version = event.sdk_version

    def _on_state(self, event: StateTransition, _target: Aggregate) -> None:
        self._check_instance(event)
        if event.previous_state != self.current_state:
            raise StateSequenceError("Teak", self.current_state, event.previous_state, event.state)
        self.state_transitions.append((event.previous_state, event.state))

    def _on_lifecycle(self, event: Lifecycle, _target: Aggregate) -> None:
        self._check_instance(event)
        if event.callback != "onActivityCreated":
            self.lifecycle_events.append(event.details)
            return

        device_key = event.device_configuration
        if device_key not in self.device_configurations:
            raise RegistrationError("Unknown device configuration", "device configuration", device_key)
        if self.device_configuration is not None:
            raise RegistrationError("Device configuration already assigned", "device configuration", device_key)
        app_key = event.app_configuration
        if app_key not in self.app_configurations:
            raise RegistrationError("Unknown app configuration", "app configuration", app_key)
        if self.app_configuration is not None:
            raise RegistrationError("App configuration already assigned", "app configuration", app_key)

        self.device_configuration = self.device_configurations[device_key]
        self.app_configuration = self.app_configurations[app_key]
        # The rest of the callback payload lives in the resolved configurations
        self.lifecycle_events.append({"callback": event.callback})

    def _on_app_configuration(self, event: AppConfigRegistered, _target: Aggregate) -> None:
        if event.instance_id in self.app_configurations:
            raise RegistrationError("Duplicate app configuration created", "app configuration", event.instance_id)
        self.app_configurations[event.instance_id] = event.configuration

    def _on_device_configuration(self, event: DeviceConfigRegistered, _target: Aggregate) -> None:
        if event.instance_id in self.device_configurations:
            raise RegistrationError("Duplicate device configuration created", "device configuration", event.instance_id)
        self.device_configurations[event.instance_id] = event.configuration

    # Session handlers

    def _on_session_created(self, event: SessionCreated, _target: Aggregate) -> None:
        current = self.current_session
        if current is not None and current.id == event.instance_id:
            return
        if self.session(event.instance_id) is not None:
            raise DuplicateSessionError(event.instance_id)
        self.sessions.append(Session(event.instance_id, event.start_date, self.config))
