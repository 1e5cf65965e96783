"""Per-session state: transitions, heartbeats, requests/replies and attribution."""

import copy
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from teaktrace.config import DEFAULT_CONFIG, EngineConfig
from .errors import AttributionError, RequestError, StateSequenceError
from .events import Heartbeat, ReplyAttached, RequestAttached, SessionStateTransition


INITIAL_STATE = "Allocated"

Transition = Tuple[Optional[str], str]


@dataclass
class RequestRecord:
    """A request and, once it arrives, its reply."""
    request: Dict[str, Any]
    reply: Optional[Dict[str, Any]] = None

    @property
    def replied(self) -> bool:
        return self.reply is not None

    def to_h(self) -> Dict[str, Any]:
        return {"request": self.request, "reply": self.reply}


class Session:
    """One SDK session with its own state machine, independent of the SDK's."""

    def __init__(self, session_id: str, start_date: datetime, config: EngineConfig = DEFAULT_CONFIG):
        self.id = session_id
        self.start_date = start_date
        self.config = config
        self.state_transitions: List[Transition] = [(None, INITIAL_STATE)]
        self.heartbeats: List[datetime] = []
        self.requests: Dict[str, RequestRecord] = {}
        self.attribution_payload: Optional[Dict[str, Any]] = None

    @property
    def current_state(self) -> str:
        return self.state_transitions[-1][1]

    @property
    def previous_state(self) -> Optional[str]:
        """The 'from' side of the most recent transition."""
        return self.state_transitions[-1][0]

    def apply_state_transition(self, event: SessionStateTransition) -> None:
        if event.previous_state != self.current_state:
            raise StateSequenceError(
                f"session {self.id}", self.current_state, event.previous_state, event.state
            )
        self.state_transitions.append((event.previous_state, event.state))

    def add_heartbeat(self, event: Heartbeat) -> None:
        self.heartbeats.append(event.timestamp)

    def is_registration(self, endpoint: str) -> bool:
        return re.match(self.config.registration_endpoint_pattern, endpoint) is not None

    def attach_request(self, event: RequestAttached) -> None:
        """Record a request; registration requests feed the attribution rule.

        The first registration request becomes the attribution payload and must
        not carry the do-not-track marker. Every later one must carry it and
        never replaces the stored payload.
        """
        if event.request_id in self.requests:
            raise RequestError("Duplicate request", self.id, event.request_id)

        capture_attribution = False
        if self.is_registration(event.endpoint):
            do_not_track = bool(event.payload.get(self.config.do_not_track_key))
            if self.attribution_payload is None:
                if do_not_track:
                    raise AttributionError(
                        "First registration request is marked do-not-track", self.id, event.request_id
                    )
                capture_attribution = True
            elif not do_not_track:
                raise AttributionError(
                    "Repeated registration request is not marked do-not-track", self.id, event.request_id
                )

        self.requests[event.request_id] = RequestRecord(request={
            "endpoint": event.endpoint,
            "hostname": event.hostname,
            "payload": event.payload,
        })
        if capture_attribution:
            self.attribution_payload = event.payload

    def attach_reply(self, event: ReplyAttached) -> None:
        record = self.requests.get(event.request_id)
        if record is None:
            raise RequestError("Reply to unknown request", self.id, event.request_id)
        if record.replied:
            raise RequestError("Request already has a reply", self.id, event.request_id)
        record.reply = {"response_time": event.response_time, "payload": event.payload}

    def to_h(self) -> Dict[str, Any]:
        return copy.deepcopy(self._view())

    def _view(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start_date": self.start_date.isoformat(),
            "current_state": self.current_state,
            "state_transitions": [list(t) for t in self.state_transitions],
            "heartbeats": [h.isoformat() for h in self.heartbeats],
            "requests": {rid: record.to_h() for rid, record in self.requests.items()},
            "attribution_payload": self.attribution_payload,
        }

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, current_state={self.current_state!r})"
